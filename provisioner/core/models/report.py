"""
Verification and warning models — the end-of-run summary.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CapabilityStatus(BaseModel):
    """Probe result for one capability."""

    present: bool
    detail: str = ""
    path: str | None = None       # resolved binary, when the probe found one
    required: bool = False


class VerificationReport(BaseModel):
    """Per-capability present/absent report after a run.

    ``artifacts`` records installed files (primary binary, data
    libraries); they are informational and do not feed ``all_satisfied``.
    """

    capabilities: dict[str, CapabilityStatus] = Field(default_factory=dict)
    artifacts: dict[str, CapabilityStatus] = Field(default_factory=dict)
    all_satisfied: bool = False

    @property
    def missing(self) -> list[str]:
        """Names of absent capabilities, in report order."""
        return [name for name, st in self.capabilities.items() if not st.present]


class ProvisionWarning(BaseModel):
    """A recoverable condition surfaced in the end-of-run summary."""

    stage: str
    message: str
    capability: str | None = None
    remediation: str | None = None
    command: str | None = None
    output: str = ""

    def __str__(self) -> str:
        prefix = f"[{self.stage}]"
        if self.capability:
            prefix += f" {self.capability}:"
        return f"{prefix} {self.message}"
