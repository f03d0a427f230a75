"""
L4 Execution — Plan execution.

Runs an InstallPlan's actions in order, exactly once each. A failing
step becomes a warning carrying the capability, the remediation and
the command's raw output; the run continues. Two exceptions:

    - a step's declared opt-in source-build fallback is tried before
      giving up on a capability;
    - a capability marked mandatory that stays unsatisfied aborts.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Any, Callable

from provisioner.core.errors import ProvisionError, SourceBuildError
from provisioner.core.models import (
    BuildFromSource,
    InstallerSettings,
    InstallPlan,
    PlanAction,
    ProvisionWarning,
)
from provisioner.core.services.provision.domain.commands import format_command
from provisioner.core.services.provision.execution.source_build import build_from_source
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """What executing a plan actually changed."""

    native_packages: list[str] = field(default_factory=list)
    helper_packages: list[str] = field(default_factory=list)
    helper: str | None = None
    source_built: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    warnings: list[ProvisionWarning] = field(default_factory=list)
    steps_run: int = 0


def _foreign_arch_enabled(arch: str, runner: Callable[..., dict[str, Any]]) -> bool:
    result = runner(["dpkg", "--print-foreign-architectures"])
    return result.get("ok", False) and arch in (result.get("stdout") or "").split()


class _PlanRunner:
    def __init__(self, *, runner, token, settings: InstallerSettings, which):
        self.runner = runner
        self.token = token
        self.settings = settings
        self.which = which
        self.result = ExecutionResult()

    def warn(self, action: PlanAction, message: str, *, capability=None, output="") -> None:
        warning = ProvisionWarning(
            stage="dependencies",
            message=message,
            capability=capability,
            remediation=action.kind,
            command=format_command(action.command) if action.command else None,
            output=output,
        )
        logger.warning("%s", warning)
        self.result.warnings.append(warning)

    def run(self, action: PlanAction) -> None:
        self.result.steps_run += 1
        handler = getattr(self, "_" + action.kind.replace("-", "_"))
        handler(action)

    # ── Handlers ──

    def _enable_foreign_arch(self, action: PlanAction) -> None:
        arch = action.packages[0]
        if _foreign_arch_enabled(arch, self.runner):
            logger.info("Foreign architecture %s already enabled", arch)
            return
        res = self.runner(list(action.command), needs_sudo=True, token=self.token)
        if not res.get("ok"):
            self.warn(action, f"Could not enable {arch} packages", output=command_output(res))

    def _refresh_metadata(self, action: PlanAction) -> None:
        res = self.runner(list(action.command), needs_sudo=True, token=self.token)
        if not res.get("ok"):
            self.warn(action, "Package metadata refresh failed", output=command_output(res))

    def _native_batch(self, action: PlanAction) -> None:
        logger.info("Installing packages: %s", " ".join(action.packages))
        res = self.runner(list(action.command), needs_sudo=True, token=self.token)
        if res.get("ok"):
            self.result.native_packages.extend(action.packages)
            return
        output = command_output(res)
        for cap in action.capabilities:
            self._capability_failed(action, cap, "Package installation failed", output)

    def _helper_install(self, action: PlanAction) -> None:
        logger.info("Installing %s via %s", " ".join(action.packages), action.helper)
        res = self.runner(list(action.command))
        if res.get("ok"):
            self.result.helper_packages.extend(action.packages)
            self.result.helper = action.helper
            return
        for cap in action.capabilities:
            self._capability_failed(
                action, cap, f"{action.helper} install failed", command_output(res),
            )

    def _source_build(self, action: PlanAction) -> None:
        cap = action.capabilities[0]
        if not self._try_build(action, cap, action.build):
            if cap in action.mandatory:
                raise ProvisionError(f"Mandatory capability '{cap}' could not be built")

    # ── Shared ──

    def _try_build(self, action: PlanAction, cap: str, build: BuildFromSource | None) -> bool:
        if build is None:
            return False
        try:
            build_from_source(
                build,
                bin_dir=self.settings.bin_dir,
                runner=self.runner,
                token=self.token,
                which=self.which,
            )
        except SourceBuildError as e:
            self.warn(action, str(e), capability=cap, output=e.output)
            self.result.failed.append(cap)
            return False
        self.result.source_built.append(build.install_name)
        return True

    def _capability_failed(self, action: PlanAction, cap: str, message: str, output: str) -> None:
        self.warn(action, message, capability=cap, output=output)
        fallback = action.fallbacks.get(cap)
        if fallback is not None:
            logger.info("%s: trying opt-in source build fallback", cap)
            if self._try_build(action, cap, fallback):
                return
        elif cap not in self.result.failed:
            self.result.failed.append(cap)
        if cap in action.mandatory:
            raise ProvisionError(f"Mandatory capability '{cap}' could not be installed")


def execute_plan(
    plan: InstallPlan,
    *,
    settings: InstallerSettings,
    runner: Callable[..., dict[str, Any]] = run_command,
    token: Any = None,
    which: Callable[[str], str | None] = shutil.which,
    on_action: Callable[[PlanAction], None] | None = None,
) -> ExecutionResult:
    """Execute every action of ``plan`` in order.

    Raises:
        ProvisionError: Only when a mandatory capability stays unsatisfied.
    """
    pr = _PlanRunner(runner=runner, token=token, settings=settings, which=which)
    for action in plan.actions:
        if on_action is not None:
            on_action(action)
        pr.run(action)
    logger.info(
        "Plan executed: %d steps, %d warnings",
        pr.result.steps_run, len(pr.result.warnings),
    )
    return pr.result
