"""
L3 Detection — Capability probe.

Read-only: is a capability present and usable? Searches PATH for the
probe's candidates in order and asks each hit for its version; the
first that answers wins. A candidate whose version query hangs past the
timeout, or cannot be executed, is skipped for the next one. Any exit
status counts as present: several assemblers print their banner and
exit non-zero on ``-?``.
"""

from __future__ import annotations

import logging
import shutil
from typing import Any, Callable

from provisioner.core.models import Capability, CapabilityStatus
from provisioner.core.services.provision.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_S = 10.0

Which = Callable[[str], str | None]


def _first_line(result: dict[str, Any]) -> str:
    for stream in ("stdout", "stderr"):
        for line in (result.get(stream) or "").splitlines():
            if line.strip():
                return line.strip()
    return ""


def probe_capability(
    capability: Capability,
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Which = shutil.which,
    timeout: float = PROBE_TIMEOUT_S,
) -> CapabilityStatus:
    """Check one capability without changing anything.

    Returns:
        CapabilityStatus with ``detail`` holding the reported version
        line, or the reason it is absent.
    """
    probe = capability.probe

    if probe.require_all:
        missing = [c for c in probe.candidates if not which(c)]
        if missing:
            return CapabilityStatus(
                present=False,
                detail=f"missing: {', '.join(missing)}",
                required=capability.mandatory,
            )
        return CapabilityStatus(
            present=True,
            detail=", ".join(probe.candidates),
            path=which(probe.candidates[0]),
            required=capability.mandatory,
        )

    unusable: list[str] = []
    last_path: str | None = None
    for candidate in probe.candidates:
        path = which(candidate)
        if not path:
            continue
        result = runner([path, *probe.version_args], timeout=timeout)
        if result.get("timed_out"):
            logger.warning("%s did not answer within %ss", candidate, timeout)
            unusable.append(f"{candidate}: no response within {timeout:g}s")
            last_path = path
            continue
        if result.get("returncode") is None:
            unusable.append(f"{candidate}: {result.get('error', 'not executable')}")
            last_path = path
            continue
        return CapabilityStatus(
            present=True,
            detail=_first_line(result) or candidate,
            path=path,
            required=capability.mandatory,
        )

    if unusable:
        return CapabilityStatus(
            present=False,
            detail="; ".join(unusable),
            path=last_path,
            required=capability.mandatory,
        )
    return CapabilityStatus(
        present=False,
        detail=f"not found ({' / '.join(probe.candidates)})",
        required=capability.mandatory,
    )


def probe_all(
    capabilities: list[Capability],
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Which = shutil.which,
    timeout: float = PROBE_TIMEOUT_S,
) -> dict[str, CapabilityStatus]:
    """Probe every capability, keyed by name, in declaration order."""
    return {
        cap.name: probe_capability(cap, runner=runner, which=which, timeout=timeout)
        for cap in capabilities
    }
