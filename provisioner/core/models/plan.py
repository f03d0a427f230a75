"""
InstallPlan — the ordered set of remediation actions for one run.

Built once by the resolver and executed once. Frozen: a failing step
never rewrites the plan; fallbacks are declared up front on the action.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from provisioner.core.models.capability import BuildFromSource

ActionKind = Literal[
    "enable-foreign-arch",
    "refresh-metadata",
    "native-batch",
    "helper-install",
    "source-build",
]


class PlanAction(BaseModel):
    """One resolved step of an InstallPlan."""

    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    label: str
    capabilities: tuple[str, ...] = ()
    command: tuple[str, ...] = ()
    needs_sudo: bool = False
    packages: tuple[str, ...] = ()
    helper: str | None = None
    build: BuildFromSource | None = None
    # capability name → opt-in source build to try if this step fails
    fallbacks: dict[str, BuildFromSource] = Field(default_factory=dict)
    # capabilities whose failure in this step is fatal
    mandatory: tuple[str, ...] = ()


class UnresolvedCapability(BaseModel):
    """A capability no remediation could satisfy on this host."""

    model_config = ConfigDict(frozen=True)

    name: str
    reason: str
    manual_hint: str = ""


class InstallPlan(BaseModel):
    """Ordered remediation actions plus what stays manual."""

    model_config = ConfigDict(frozen=True)

    family: str
    actions: tuple[PlanAction, ...] = ()
    unresolved: tuple[UnresolvedCapability, ...] = ()

    @property
    def packages(self) -> list[str]:
        """All native package names, in batch order."""
        names: list[str] = []
        for action in self.actions:
            if action.kind == "native-batch":
                names.extend(action.packages)
        return names

    @property
    def source_builds(self) -> list[PlanAction]:
        return [a for a in self.actions if a.kind == "source-build"]

    @property
    def empty(self) -> bool:
        return not self.actions
