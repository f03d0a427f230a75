"""
L3 Detection — Verification auditor.

Re-probes every capability the run attempted to satisfy (not only the
ones it changed) and checks the installed artifacts. Never mutates
state.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Callable

from provisioner.core.models import (
    Capability,
    CapabilityStatus,
    InstallerSettings,
    VerificationReport,
)
from provisioner.core.services.provision.data.constants import (
    IRVINE_MARKERS,
    PRIMARY_BINARY,
)
from provisioner.core.services.provision.detection.capability_probe import (
    PROBE_TIMEOUT_S,
    Which,
    probe_all,
)
from provisioner.core.services.provision.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)


def _check_primary(
    settings: InstallerSettings,
    runner: Callable[..., dict[str, Any]],
    timeout: float,
) -> CapabilityStatus:
    path = settings.bin_dir / PRIMARY_BINARY
    if not path.is_file():
        return CapabilityStatus(present=False, detail=f"{path} not found", required=True)
    if not os.access(path, os.X_OK):
        return CapabilityStatus(present=False, detail=f"{path} is not executable", required=True)
    result = runner([str(path), "--version"], timeout=timeout)
    detail = (result.get("stdout") or "").strip().splitlines()
    return CapabilityStatus(
        present=True,
        detail=detail[0] if detail else str(path),
        path=str(path),
        required=True,
    )


def _check_data_libraries(lib_dir: Path) -> CapabilityStatus:
    for name in IRVINE_MARKERS:
        if (lib_dir / name).is_file():
            return CapabilityStatus(present=True, detail=name, path=str(lib_dir / name))
    return CapabilityStatus(present=False, detail=f"Irvine32.lib not found in {lib_dir}")


def audit(
    capabilities: list[Capability],
    *,
    settings: InstallerSettings | None = None,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Which = shutil.which,
    timeout: float = PROBE_TIMEOUT_S,
) -> VerificationReport:
    """Produce the end-of-run report.

    Args:
        capabilities: Every capability the run attempted to satisfy.
        settings: When given, installed artifacts are checked too.
            Artifacts are informational and never affect
            ``all_satisfied``.
    """
    statuses = probe_all(capabilities, runner=runner, which=which, timeout=timeout)

    artifacts: dict[str, CapabilityStatus] = {}
    if settings is not None:
        artifacts[PRIMARY_BINARY] = _check_primary(settings, runner, timeout)
        artifacts["irvine-libraries"] = _check_data_libraries(settings.lib_dir)

    report = VerificationReport(
        capabilities=statuses,
        artifacts=artifacts,
        all_satisfied=all(s.present for s in statuses.values()),
    )
    logger.info(
        "Audit: %d/%d capabilities present",
        sum(1 for s in statuses.values() if s.present), len(statuses),
    )
    return report
