"""
L3 Detection — Environment prober.

Read-only: identifies the host's CPU architecture and distro family
from static host files. Deterministic for a given host; callable any
number of times, though the pipeline probes once per run.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from provisioner.core.errors import UnsupportedArchitectureError
from provisioner.core.models import DistroProfile
from provisioner.core.services.provision.data.constants import (
    MARKER_FILES,
    OS_RELEASE_PATHS,
)
from provisioner.core.services.provision.domain.distro import (
    classify_os_release,
    normalize_arch,
    package_manager_for,
    parse_os_release,
)

logger = logging.getLogger(__name__)


def _under(root: Path, absolute: str) -> Path:
    return root / absolute.lstrip("/")


def _read_os_release(root: Path) -> dict[str, str]:
    for candidate in OS_RELEASE_PATHS:
        path = _under(root, candidate)
        try:
            return parse_os_release(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug("Cannot read %s: %s", path, e)
            continue
    return {}


def detect_architecture(machine: str | None = None) -> str:
    """Canonical architecture of the running kernel.

    Raises:
        UnsupportedArchitectureError: For anything outside x86_64/aarch64.
    """
    raw = platform.machine() if machine is None else machine
    arch = normalize_arch(raw)
    if arch is None:
        raise UnsupportedArchitectureError(raw)
    return arch


def probe_environment(
    *,
    root: Path = Path("/"),
    machine: str | None = None,
) -> DistroProfile:
    """Identify the host.

    Reads os-release first (``ID``, then ``ID_LIKE``), then the
    distro-specific marker files, and falls back to the unknown family.

    Args:
        root: Filesystem root to inspect (tests point this at a tmp dir).
        machine: Override for ``uname -m``.

    Raises:
        UnsupportedArchitectureError: If the architecture is unsupported.
    """
    arch = detect_architecture(machine)

    fields = _read_os_release(root)
    distro_id = fields.get("ID", "").lower() or "unknown"
    name = fields.get("PRETTY_NAME") or fields.get("NAME", "")
    family = classify_os_release(fields)

    if family is None:
        for marker, marker_id, marker_family in MARKER_FILES:
            if _under(root, marker).exists():
                family = marker_family
                if distro_id == "unknown":
                    distro_id = marker_id
                logger.debug("Family %s from marker %s", family, marker)
                break

    family = family or "unknown"
    profile = DistroProfile(
        id=distro_id,
        name=name or distro_id,
        family=family,
        package_manager=package_manager_for(family),
        arch=arch,
    )
    logger.info(
        "Detected %s (family=%s, pm=%s, arch=%s)",
        profile.id, profile.family, profile.package_manager, profile.arch,
    )
    return profile
