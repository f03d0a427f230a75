"""
L1 Domain — Distro classification (pure).

Parse os-release content and map ids to families.
No I/O, no subprocess, no imports beyond stdlib and the data layer.
"""

from __future__ import annotations

import shlex

from provisioner.core.services.provision.data.constants import (
    ARCH_MAP,
    DISTRO_FAMILIES,
    FAMILY_PACKAGE_MANAGER,
)


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``/etc/os-release`` content into a dict.

    Values may be quoted with single or double quotes; comments and
    malformed lines are skipped.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            continue
        fields[key.strip()] = parts[0] if parts else ""
    return fields


def family_for_id(distro_id: str) -> str | None:
    """Map a single os-release id to its family, or None if unknown.

    Table keys ending in ``*`` match by prefix (``opensuse-tumbleweed``
    → ``opensuse*``).
    """
    distro_id = distro_id.strip().lower()
    if not distro_id:
        return None
    if distro_id in DISTRO_FAMILIES:
        return DISTRO_FAMILIES[distro_id]
    for key, family in DISTRO_FAMILIES.items():
        if key.endswith("*") and distro_id.startswith(key[:-1]):
            return family
    return None


def classify_os_release(fields: dict[str, str]) -> str | None:
    """Family for parsed os-release fields.

    ``ID`` wins; otherwise each ``ID_LIKE`` entry is tried in order.
    """
    family = family_for_id(fields.get("ID", ""))
    if family:
        return family
    for like in fields.get("ID_LIKE", "").split():
        family = family_for_id(like)
        if family:
            return family
    return None


def normalize_arch(machine: str) -> str | None:
    """Canonical architecture for a ``uname -m`` value, None if unsupported."""
    return ARCH_MAP.get(machine.strip().lower())


def package_manager_for(family: str) -> str:
    return FAMILY_PACKAGE_MANAGER.get(family, "none")
