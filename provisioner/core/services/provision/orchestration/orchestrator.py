"""
L5 Orchestration — Install pipeline.

Ties the layers together in one strictly linear run:

    probe environment → confirm → acquire privilege → stage source →
    probe capabilities → resolve → execute plan → install artifacts →
    materialize config → audit → write receipt

Only the conditions in ``provisioner.core.errors`` abort; everything
else is collected as a warning for the end-of-run summary. Privilege
and temporary directories are released on every exit path.
"""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator

from provisioner.core.errors import ArtifactError
from provisioner.core.models import (
    DistroProfile,
    InstallerSettings,
    InstallPlan,
    InstallReceipt,
    ProvisionWarning,
    VerificationReport,
)
from provisioner.core.persistence.receipt import load_receipt, save_receipt
from provisioner.core.services.provision.data.capabilities import toolchain_capabilities
from provisioner.core.services.provision.data.constants import (
    ASSEMBLER_BINARY,
    IRVINE_DIR,
    IRVINE_INC_PATTERNS,
    IRVINE_LIB_PATTERNS,
    PRIMARY_BINARY,
    TEMPLATES_DIR,
)
from provisioner.core.services.provision.detection.capability_probe import probe_all
from provisioner.core.services.provision.detection.environment import probe_environment
from provisioner.core.services.provision.detection.verification import audit
from provisioner.core.services.provision.domain.confirmation import (
    PROCEED_INSTALL,
    Confirmer,
)
from provisioner.core.services.provision.execution.artifacts import (
    Artifact,
    ArtifactGlob,
    install_artifacts,
)
from provisioner.core.services.provision.execution.config_materializer import (
    MaterializeResult,
    install_templates,
    materialize,
)
from provisioner.core.services.provision.execution.plan_execution import (
    ExecutionResult,
    execute_plan,
)
from provisioner.core.services.provision.execution.privilege import PrivilegeBroker
from provisioner.core.services.provision.execution.release import (
    StagedRelease,
    resolve_version,
    stage_release,
)
from provisioner.core.services.provision.execution.source_build import build_in_tree
from provisioner.core.services.provision.execution.subprocess_runner import run_command
from provisioner.core.services.provision.resolver.plan_resolution import resolve

logger = logging.getLogger(__name__)


@dataclass
class InstallRequest:
    """Where the primary artifact comes from.

    ``source_dir`` holding a prebuilt ``masmide`` is a local release;
    holding ``Cargo.toml`` it is a source checkout. Without
    ``source_dir`` the release is downloaded (``version`` pins it).
    """

    source_dir: Path | None = None
    version: str | None = None
    allow_source_fallback: bool | None = None


@dataclass
class InstallOutcome:
    """Everything the run did, for the summary and ``--json``."""

    profile: DistroProfile | None = None
    mode: str = ""
    version: str = ""
    cancelled: bool = False
    plan: InstallPlan | None = None
    execution: ExecutionResult | None = None
    installed_files: list[Path] = field(default_factory=list)
    config: MaterializeResult | None = None
    templates_copied: list[Path] = field(default_factory=list)
    report: VerificationReport | None = None
    warnings: list[ProvisionWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "profile": self.profile.model_dump() if self.profile else None,
            "mode": self.mode,
            "version": self.version,
            "cancelled": self.cancelled,
            "plan": self.plan.model_dump(mode="json") if self.plan else None,
            "installed_files": [str(p) for p in self.installed_files],
            "config_written": bool(self.config and self.config.written),
            "report": self.report.model_dump(mode="json") if self.report else None,
            "warnings": [w.model_dump() for w in self.warnings],
        }


def source_mode(request: InstallRequest) -> str:
    """``release`` (download), ``local`` (prebuilt dir) or ``checkout`` (cargo).

    Raises:
        ArtifactError: If ``source_dir`` holds neither.
    """
    if request.source_dir is None:
        return "release"
    src = request.source_dir
    if (src / PRIMARY_BINARY).is_file():
        return "local"
    if (src / "Cargo.toml").is_file():
        return "checkout"
    raise ArtifactError(
        f"{src} contains neither a prebuilt {PRIMARY_BINARY} binary nor a Cargo.toml"
    )


@contextmanager
def _staged_source(
    mode: str,
    request: InstallRequest,
    version: str,
    profile: DistroProfile,
    settings: InstallerSettings,
    runner: Callable[..., dict[str, Any]],
    which: Callable[[str], str | None],
) -> Iterator[StagedRelease]:
    if mode == "release":
        with stage_release(
            version,
            profile.arch,
            repo=settings.release_repo,
            timeout=settings.http_timeout,
            runner=runner,
            which=which,
        ) as staged:
            yield staged
        return
    yield StagedRelease(root=request.source_dir, version=version, archive_url="")


def _plan_summary(profile: DistroProfile, mode: str, version: str, settings: InstallerSettings) -> str:
    source = {"release": f"release {version}", "local": "local release", "checkout": "source checkout"}
    return (
        f"Host: {profile.name} ({profile.family}, {profile.arch})\n"
        f"Source: {source.get(mode, mode)}\n"
        f"Binaries → {settings.bin_dir}\n"
        f"Libraries → {settings.lib_dir}, {settings.inc_dir}"
    )


def run_install(
    request: InstallRequest,
    *,
    settings: InstallerSettings,
    confirmer: Confirmer,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Callable[[str], str | None] = shutil.which,
    broker: PrivilegeBroker | None = None,
    profile: DistroProfile | None = None,
    on_step: Callable[[str], None] | None = None,
) -> InstallOutcome:
    """Run the full install pipeline.

    Args:
        request: Source of the primary artifact.
        settings: Installer settings.
        confirmer: Answers the top-level confirmation.
        runner: Subprocess runner (tests pass a simulated host).
        which: PATH lookup.
        broker: Privilege broker; built from settings when omitted.
        profile: Pre-computed DistroProfile; probed when omitted.
        on_step: Progress callback for the CLI.

    Raises:
        ProvisionError: On any fatal condition.
    """
    step = on_step or (lambda msg: None)
    outcome = InstallOutcome()

    # ── 1. Environment ──
    step("Detecting environment")
    profile = profile or probe_environment()
    outcome.profile = profile
    if not profile.known:
        outcome.warnings.append(ProvisionWarning(
            stage="environment",
            message=(
                f"Unrecognized distribution '{profile.id}'; "
                "toolchain dependencies must be installed manually"
            ),
        ))

    mode = source_mode(request)
    outcome.mode = mode
    version = request.version or ""
    if mode == "release":
        step("Resolving release version")
        version = resolve_version(request.version, settings.release_repo, timeout=settings.http_timeout)
    outcome.version = version

    # ── 2. Confirmation checkpoint ──
    if not confirmer.confirm(PROCEED_INSTALL, _plan_summary(profile, mode, version, settings)):
        logger.info("Installation cancelled by user")
        outcome.cancelled = True
        return outcome

    allow_fallback = (
        request.allow_source_fallback
        if request.allow_source_fallback is not None
        else settings.allow_source_fallback
    )

    # ── 3. Privilege ──
    step("Acquiring privileges")
    broker = broker or PrivilegeBroker(settings.privilege_renewal_interval, runner=runner)
    with broker.session() as token:
        with _staged_source(mode, request, version, profile, settings, runner, which) as source:
            outcome.warnings.extend(source.warnings)
            _install_from(
                source, mode, profile, settings, runner, which, token,
                outcome, step, allow_fallback,
            )

    return outcome


def _install_from(
    source: StagedRelease,
    mode: str,
    profile: DistroProfile,
    settings: InstallerSettings,
    runner: Callable[..., dict[str, Any]],
    which: Callable[[str], str | None],
    token: Any,
    outcome: InstallOutcome,
    step: Callable[[str], None],
    allow_fallback: bool,
) -> None:
    root = source.root

    # ── 4. Capabilities ──
    step("Checking toolchain")
    capabilities = toolchain_capabilities(
        assembler_repo=settings.assembler_repo,
        assembler_ref=settings.assembler_ref,
        include_rust=(mode == "checkout"),
    )
    bundled = {
        c.name for c in capabilities
        if c.bundled_binary and (root / c.bundled_binary).is_file()
    }
    to_probe = [c for c in capabilities if c.name not in bundled]
    statuses = probe_all(to_probe, runner=runner, which=which, timeout=settings.probe_timeout)
    missing = [c for c in to_probe if not statuses[c.name].present]
    for name in bundled:
        logger.info("%s satisfied by the bundled binary", name)

    # ── 5. Resolve + execute ──
    plan = resolve(missing, profile, which=which, allow_source_fallback=allow_fallback)
    outcome.plan = plan
    for item in plan.unresolved:
        outcome.warnings.append(ProvisionWarning(
            stage="dependencies",
            capability=item.name,
            message=f"manual — unresolved: {item.reason}. {item.manual_hint}",
        ))
    if plan.actions:
        step("Installing dependencies")
        execution = execute_plan(
            plan,
            settings=settings,
            runner=runner,
            token=token,
            which=which,
            on_action=lambda a: step(a.label),
        )
        outcome.execution = execution
        outcome.warnings.extend(execution.warnings)

    # ── 6. Primary artifact ──
    if mode == "checkout":
        step(f"Building {PRIMARY_BINARY}")
        primary = build_in_tree(root, runner=runner, which=which)
    else:
        primary = root / PRIMARY_BINARY

    # ── 7. Artifacts ──
    step("Installing files")
    artifacts = [
        Artifact(primary, settings.bin_dir / PRIMARY_BINARY, 0o755, mandatory=True, label=PRIMARY_BINARY),
    ]
    if mode != "checkout":
        artifacts.append(Artifact(
            root / ASSEMBLER_BINARY, settings.bin_dir / ASSEMBLER_BINARY, 0o755,
            label="bundled JWasm",
        ))
    irvine = root / IRVINE_DIR
    globs: list[ArtifactGlob] = []
    if irvine.is_dir():
        globs = [
            ArtifactGlob(irvine, IRVINE_LIB_PATTERNS, settings.lib_dir, 0o644, label="Irvine library"),
            ArtifactGlob(irvine, IRVINE_INC_PATTERNS, settings.inc_dir, 0o644, label="Irvine include"),
        ]
    else:
        outcome.warnings.append(ProvisionWarning(
            stage="artifacts",
            message=f"{IRVINE_DIR}/ not found in {root}; Irvine32 libraries not installed",
        ))
    installed = install_artifacts(artifacts, globs, runner=runner, token=token)
    outcome.installed_files = installed.installed
    outcome.warnings.extend(installed.warnings)

    # ── 8. Configuration ──
    step("Writing configuration")
    outcome.config = materialize(settings.config_file, settings=settings, which=which)
    templates = install_templates(root / TEMPLATES_DIR, settings.templates_dir)
    outcome.templates_copied = templates.copied

    # ── 9. Audit ──
    step("Verifying installation")
    outcome.report = audit(
        capabilities,
        settings=settings,
        runner=runner,
        which=which,
        timeout=settings.probe_timeout,
    )

    # ── 10. Receipt ──
    execution = outcome.execution or ExecutionResult()
    receipt = InstallReceipt(
        version=outcome.version or source.version,
        family=profile.family,
        installed_files=[str(p) for p in installed.installed],
        installed_dirs=[str(settings.lib_dir), str(settings.inc_dir)],
        native_packages=execution.native_packages,
        helper_packages=execution.helper_packages,
        helper=execution.helper,
        source_built=execution.source_built,
        config_written=outcome.config.written,
    )
    receipt = receipt.merged_over(load_receipt(settings.receipt_file))
    try:
        save_receipt(receipt, settings.receipt_file)
    except OSError as e:
        outcome.warnings.append(ProvisionWarning(
            stage="receipt", message=f"Could not write install receipt: {e}",
        ))
