"""
L0 Data — Host identification tables and fixed names.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Kernel machine type (uname -m) → canonical architecture.
# Anything not listed here is unsupported and aborts the run.
ARCH_MAP: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

OS_RELEASE_PATHS: tuple[str, ...] = ("/etc/os-release", "/usr/lib/os-release")

# os-release ID → family. Prefix entries end with "*".
DISTRO_FAMILIES: dict[str, str] = {
    "arch": "arch",
    "manjaro": "arch",
    "endeavouros": "arch",
    "garuda": "arch",
    "debian": "debian",
    "ubuntu": "debian",
    "linuxmint": "debian",
    "pop": "debian",
    "elementary": "debian",
    "zorin": "debian",
    "kali": "debian",
    "fedora": "fedora",
    "rhel": "fedora",
    "centos": "fedora",
    "rocky": "fedora",
    "almalinux": "fedora",
    "opensuse*": "suse",
    "sles": "suse",
    "suse": "suse",
}

# Distro-specific marker files, consulted in order when os-release
# does not identify the family.
MARKER_FILES: tuple[tuple[str, str, str], ...] = (
    # (path, distro id, family)
    ("/etc/arch-release", "arch", "arch"),
    ("/etc/debian_version", "debian", "debian"),
    ("/etc/fedora-release", "fedora", "fedora"),
    ("/etc/SuSE-release", "suse", "suse"),
)

FAMILY_PACKAGE_MANAGER: dict[str, str] = {
    "arch": "pacman",
    "debian": "apt",
    "fedora": "dnf",
    "suse": "zypper",
    "unknown": "none",
}

# Names of things the installer places on disk.
PRIMARY_BINARY = "masmide"
ASSEMBLER_BINARY = "jwasm"

# Data library globs inside a release's Irvine/ directory.
IRVINE_DIR = "Irvine"
IRVINE_LIB_PATTERNS: tuple[str, ...] = ("*.lib", "*.Lib", "*.obj")
IRVINE_INC_PATTERNS: tuple[str, ...] = ("*.inc",)
IRVINE_MARKERS: tuple[str, ...] = ("Irvine32.lib", "irvine32.lib")

TEMPLATES_DIR = "templates"

# Release registry.
GITHUB_API = "https://api.github.com"
GITHUB_DOWNLOAD = "https://github.com"
RELEASE_ARCHIVE_NAME = "masmide-{version}-linux-{arch}.tar.gz"
RELEASE_ROOT_GLOB = "masmide-*"

# Linker binary names, in preference order.
LINKER_CANDIDATES: tuple[str, ...] = ("i686-w64-mingw32-ld", "x86_64-w64-mingw32-ld")

# Foreign architecture the 32-bit binary runner needs on dpkg systems.
FOREIGN_ARCH_I386 = "i386"
