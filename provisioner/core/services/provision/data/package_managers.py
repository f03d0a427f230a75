"""
L0 Data — Package manager command table.

One entry per supported package manager: how to refresh metadata, how
to install a batch of packages non-interactively, and the removal
command printed (never run) by the uninstaller.
"""

from __future__ import annotations

PACKAGE_MANAGERS: dict[str, dict] = {
    "apt": {
        "refresh": ["apt-get", "update", "-qq"],
        "install": ["apt-get", "install", "-y"],
        "remove": ["apt", "remove"],
        "batch": True,
    },
    "pacman": {
        "refresh": ["pacman", "-Sy", "--noconfirm"],
        "install": ["pacman", "-S", "--noconfirm", "--needed"],
        "remove": ["pacman", "-Rs"],
        "batch": True,
    },
    "dnf": {
        "refresh": None,    # dnf refreshes stale metadata on install
        "install": ["dnf", "install", "-y"],
        "remove": ["dnf", "remove"],
        "batch": True,
    },
    "zypper": {
        "refresh": ["zypper", "--non-interactive", "refresh"],
        "install": ["zypper", "--non-interactive", "install"],
        "remove": ["zypper", "remove"],
        "batch": True,
    },
}

# Community helpers install as the invoking user; they elevate themselves.
HELPER_INSTALL: dict[str, list[str]] = {
    "yay": ["yay", "-S", "--noconfirm"],
    "paru": ["paru", "-S", "--noconfirm"],
}

HELPER_REMOVE: dict[str, list[str]] = {
    "yay": ["yay", "-Rs"],
    "paru": ["paru", "-Rs"],
}
