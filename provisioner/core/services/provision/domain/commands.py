"""
L1 Domain — Package manager command builders (pure).

Turn the L0 package-manager table into concrete argv lists.
No I/O, no subprocess.
"""

from __future__ import annotations

import shlex

from provisioner.core.services.provision.data.package_managers import (
    HELPER_INSTALL,
    HELPER_REMOVE,
    PACKAGE_MANAGERS,
)


def build_install_cmd(packages: list[str], pm: str) -> list[str] | None:
    """Build a non-interactive install command for a package batch.

    Returns:
        argv list, or None if ``pm`` is not supported.
    """
    spec = PACKAGE_MANAGERS.get(pm)
    if spec is None:
        return None
    return [*spec["install"], *packages]


def build_refresh_cmd(pm: str) -> list[str] | None:
    """Metadata refresh command, or None if the manager needs none."""
    spec = PACKAGE_MANAGERS.get(pm)
    if spec is None or spec["refresh"] is None:
        return None
    return list(spec["refresh"])


def build_helper_cmd(helper: str, package: str) -> list[str] | None:
    base = HELPER_INSTALL.get(helper)
    if base is None:
        return None
    return [*base, package]


def removal_hint(packages: list[str], pm: str, *, sudo: bool = True) -> str | None:
    """Shell line a user would run to remove ``packages``. Never executed."""
    spec = PACKAGE_MANAGERS.get(pm)
    if spec is None or not packages:
        return None
    argv = [*spec["remove"], *packages]
    if sudo:
        argv.insert(0, "sudo")
    return shlex.join(argv)


def helper_removal_hint(helper: str, packages: list[str]) -> str | None:
    base = HELPER_REMOVE.get(helper)
    if base is None or not packages:
        return None
    return shlex.join([*base, *packages])


def format_command(argv: list[str] | tuple[str, ...]) -> str:
    """Render an argv list for logs and warnings."""
    return shlex.join(list(argv))
