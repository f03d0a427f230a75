"""
L5 Orchestration — Uninstall planner.

The mirror of the install pipeline, bounded on purpose: it removes only
filesystem paths this installer owns. Package-manager dependencies are
never removed automatically; the planner prints the commands a user
would run instead.

Confirmation policy:
    - core removals (primary binary, data-library dirs, receipt):
      one top-level confirmation, default no;
    - bundled assembler and user configuration: one confirmation
      each, default no. Nothing optional is asked once the top-level
      confirmation is declined.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal

from provisioner.core.models import (
    DistroProfile,
    InstallerSettings,
    InstallReceipt,
    NativePackage,
    ProvisionWarning,
)
from provisioner.core.persistence.receipt import load_receipt
from provisioner.core.services.provision.data.capabilities import (
    BINARY_RUNNER,
    PE_LINKER,
    assembler_capability,
)
from provisioner.core.services.provision.data.constants import (
    ASSEMBLER_BINARY,
    PRIMARY_BINARY,
)
from provisioner.core.services.provision.detection.environment import probe_environment
from provisioner.core.services.provision.domain.commands import (
    helper_removal_hint,
    removal_hint,
)
from provisioner.core.services.provision.domain.confirmation import (
    PROCEED_UNINSTALL,
    REMOVE_BUNDLED_ASSEMBLER,
    REMOVE_USER_CONFIG,
    Checkpoint,
    Confirmer,
)
from provisioner.core.services.provision.execution.artifacts import remove_path
from provisioner.core.services.provision.execution.privilege import PrivilegeBroker
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)

logger = logging.getLogger(__name__)

Category = Literal["core", "bundled-assembler", "user-config"]

_CATEGORY_CHECKPOINT: dict[str, Checkpoint] = {
    "core": PROCEED_UNINSTALL,
    "bundled-assembler": REMOVE_BUNDLED_ASSEMBLER,
    "user-config": REMOVE_USER_CONFIG,
}


@dataclass
class InstalledState:
    """Installer-owned paths that currently exist."""

    primary: Path | None = None
    assembler: Path | None = None
    lib_dir: Path | None = None
    inc_dir: Path | None = None
    config_dir: Path | None = None
    receipt_file: Path | None = None
    receipt: InstallReceipt | None = None

    @property
    def empty(self) -> bool:
        return not any((
            self.primary, self.assembler, self.lib_dir, self.inc_dir,
            self.config_dir, self.receipt_file,
        ))


@dataclass(frozen=True)
class RemovalStep:
    path: Path
    category: Category
    label: str

    @property
    def checkpoint(self) -> Checkpoint:
        return _CATEGORY_CHECKPOINT[self.category]

    @property
    def mandatory(self) -> bool:
        return self.category == "core"


@dataclass
class RemovalResult:
    removed: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    warnings: list[ProvisionWarning] = field(default_factory=list)


@dataclass
class UninstallOutcome:
    profile: DistroProfile | None = None
    steps: list[RemovalStep] = field(default_factory=list)
    approvals: dict[str, bool] = field(default_factory=dict)
    cancelled: bool = False
    result: RemovalResult | None = None
    hints: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "cancelled": self.cancelled,
            "steps": [
                {"path": str(s.path), "category": s.category, "label": s.label}
                for s in self.steps
            ],
            "removed": [str(p) for p in (self.result.removed if self.result else [])],
            "hints": self.hints,
        }


def _existing(path: Path) -> Path | None:
    return path if path.exists() or path.is_symlink() else None


def inspect_installed_state(settings: InstallerSettings) -> InstalledState:
    """Read-only look at what the installer left on this machine."""
    return InstalledState(
        primary=_existing(settings.bin_dir / PRIMARY_BINARY),
        assembler=_existing(settings.bin_dir / ASSEMBLER_BINARY),
        lib_dir=_existing(settings.lib_dir),
        inc_dir=_existing(settings.inc_dir),
        config_dir=_existing(settings.user_config_dir),
        receipt_file=_existing(settings.receipt_file),
        receipt=load_receipt(settings.receipt_file),
    )


def plan_removal(state: InstalledState) -> list[RemovalStep]:
    """Ordered removal steps: core first, then optional categories."""
    steps: list[RemovalStep] = []
    if state.primary:
        steps.append(RemovalStep(state.primary, "core", f"{PRIMARY_BINARY} binary"))
    if state.lib_dir:
        steps.append(RemovalStep(state.lib_dir, "core", "Irvine libraries"))
    if state.inc_dir:
        steps.append(RemovalStep(state.inc_dir, "core", "Irvine includes"))
    if state.receipt_file:
        steps.append(RemovalStep(state.receipt_file, "core", "install receipt"))
    if state.assembler:
        steps.append(RemovalStep(state.assembler, "bundled-assembler", "JWasm assembler"))
    if state.config_dir:
        steps.append(RemovalStep(state.config_dir, "user-config", "user configuration"))
    return steps


def collect_confirmations(steps: list[RemovalStep], confirmer: Confirmer) -> dict[str, bool]:
    """Ask each checkpoint the steps need, once; keyed by checkpoint key."""
    approvals: dict[str, bool] = {}
    if not steps:
        return approvals

    listing = "\n".join(f"  {s.path}" for s in steps if s.mandatory)
    approvals[PROCEED_UNINSTALL.key] = confirmer.confirm(
        PROCEED_UNINSTALL, f"The following will be removed:\n{listing}" if listing else "",
    )
    for step in steps:
        key = step.checkpoint.key
        if key in approvals:
            continue
        if not approvals[PROCEED_UNINSTALL.key]:
            approvals[key] = False
            continue
        approvals[key] = confirmer.confirm(step.checkpoint, str(step.path))
    return approvals


def execute_removal(
    steps: list[RemovalStep],
    approvals: dict[str, bool],
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    token: Any = None,
) -> RemovalResult:
    """Delete every approved step's path. Never touches packages."""
    result = RemovalResult()
    for step in steps:
        if not approvals.get(step.checkpoint.key, False):
            result.skipped.append(step.path)
            continue
        res = remove_path(step.path, runner=runner, token=token)
        if res.get("ok"):
            logger.info("Removed %s", step.path)
            result.removed.append(step.path)
        else:
            result.warnings.append(ProvisionWarning(
                stage="uninstall",
                message=f"Could not remove {step.path}",
                output=command_output(res),
            ))
    return result


def _declared_packages(family: str) -> list[str]:
    packages: list[str] = []
    for cap in (PE_LINKER, BINARY_RUNNER, assembler_capability()):
        for rem in cap.remediations:
            if isinstance(rem, NativePackage):
                for pkg in rem.packages_for(family):
                    if pkg not in packages:
                        packages.append(pkg)
    return packages


def package_removal_hints(profile: DistroProfile, receipt: InstallReceipt | None) -> list[str]:
    """Shell lines a user could run to remove toolchain packages.

    Printed only. With a receipt that records packages they name exactly
    what this installer added; otherwise the family's declared toolchain
    packages. Helper-installed packages are removed through the helper
    that installed them, or pacman when none was recorded.
    """
    pm = profile.package_manager
    hints: list[str] = []
    if receipt is not None and receipt.records_packages:
        line = removal_hint(receipt.native_packages, pm)
        if line:
            hints.append(line)
        if receipt.helper:
            line = helper_removal_hint(receipt.helper, receipt.helper_packages)
        else:
            line = removal_hint(receipt.helper_packages, "pacman")
        if line:
            hints.append(line)
        return hints

    line = removal_hint(_declared_packages(profile.family), pm)
    if line:
        hints.append(line)
    return hints


def run_uninstall(
    *,
    settings: InstallerSettings,
    confirmer: Confirmer,
    runner: Callable[..., dict[str, Any]] = run_command,
    broker: PrivilegeBroker | None = None,
    profile: DistroProfile | None = None,
) -> UninstallOutcome:
    """Plan, confirm and execute removal, then compute package hints."""
    outcome = UninstallOutcome()
    profile = profile or probe_environment()
    outcome.profile = profile

    state = inspect_installed_state(settings)
    outcome.steps = plan_removal(state)
    outcome.hints = package_removal_hints(profile, state.receipt)
    if state.empty:
        logger.info("Nothing to remove")
        return outcome

    outcome.approvals = collect_confirmations(outcome.steps, confirmer)
    if not outcome.approvals.get(PROCEED_UNINSTALL.key):
        outcome.cancelled = True
        return outcome

    broker = broker or PrivilegeBroker(settings.privilege_renewal_interval, runner=runner)
    with broker.session() as token:
        outcome.result = execute_removal(
            outcome.steps, outcome.approvals, runner=runner, token=token,
        )
    return outcome
