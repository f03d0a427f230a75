"""
L2 Resolver — Plan resolution.

Maps unmet capabilities to an ordered InstallPlan. One algorithm
consumes the L0 capability table; per-family specifics stay declarative.

Selection rules:
    1. For each capability, the first remediation (declaration order)
       that applies to the host family is chosen.
    2. Native packages for all capabilities are batched into one
       package-manager call, preceded by a metadata refresh.
    3. A third-party helper is the first declared helper found on PATH;
       with none available the capability stays manual.
    4. No applicable remediation → "manual — unresolved", a warning,
       never an abort.
    5. A failed step never re-routes to a later remediation, except the
       explicit opt-in source-build fallback, attached to the action at
       resolve time so the plan itself never changes.
"""

from __future__ import annotations

import logging
import shutil
from typing import Callable

from provisioner.core.models import (
    BuildFromSource,
    Capability,
    DistroProfile,
    InstallPlan,
    NativePackage,
    PlanAction,
    ThirdPartyHelper,
    UnresolvedCapability,
)
from provisioner.core.services.provision.data.package_managers import PACKAGE_MANAGERS
from provisioner.core.services.provision.domain.commands import (
    build_helper_cmd,
    build_install_cmd,
    build_refresh_cmd,
    format_command,
)

logger = logging.getLogger(__name__)


def _manual_hint(cap: Capability, profile: DistroProfile) -> str:
    binaries = " / ".join(cap.probe.candidates)
    if profile.family == "unknown":
        return (
            f"Install {cap.display_name} ({binaries}) with your distribution's "
            "package manager, then re-run the installer."
        )
    return f"Install {cap.display_name} ({binaries}) manually, then re-run the installer."


def _helper_hint(rem: ThirdPartyHelper) -> str:
    helpers = " or ".join(rem.helper_names)
    example = format_command(build_helper_cmd(rem.helper_names[0], rem.package_name) or [])
    return f"Install an AUR helper ({helpers}), then run: {example}"


def _source_action(cap: Capability, build: BuildFromSource) -> PlanAction:
    return PlanAction(
        kind="source-build",
        label=f"Build {cap.display_name} from source",
        capabilities=(cap.name,),
        command=build.variants[0].build_command,
        needs_sudo=False,
        build=build,
        mandatory=(cap.name,) if cap.mandatory else (),
    )


def resolve(
    missing: list[Capability],
    profile: DistroProfile,
    *,
    which: Callable[[str], str | None] = shutil.which,
    allow_source_fallback: bool = False,
) -> InstallPlan:
    """Produce the InstallPlan for the capabilities that are absent.

    Args:
        missing: Capabilities whose probe failed, in declaration order.
        profile: The run's DistroProfile.
        which: PATH lookup used to find third-party helpers.
        allow_source_fallback: Attach each capability's source build as
            a fallback for a failing native/helper step, and use it
            when no helper is available.

    Returns:
        Frozen InstallPlan.
    """
    family = profile.family
    pm = profile.package_manager
    pm_spec = PACKAGE_MANAGERS.get(pm)

    batch_packages: list[str] = []
    batch_caps: list[str] = []
    batch_mandatory: list[str] = []
    batch_fallbacks: dict[str, BuildFromSource] = {}
    foreign_archs: list[str] = []
    per_cap_native: list[PlanAction] = []
    helper_actions: list[PlanAction] = []
    source_actions: list[PlanAction] = []
    unresolved: list[UnresolvedCapability] = []

    for cap in missing:
        applicable = [r for r in cap.remediations if r.applies_to(family)]
        fallback = cap.source_build() if allow_source_fallback else None

        if not applicable:
            if fallback is not None:
                logger.info("%s: no remediation for %s — using opt-in source build", cap.name, family)
                source_actions.append(_source_action(cap, fallback))
                continue
            logger.info("%s: no remediation for family %s", cap.name, family)
            unresolved.append(UnresolvedCapability(
                name=cap.name,
                reason=f"no remediation available for family '{family}'",
                manual_hint=_manual_hint(cap, profile),
            ))
            continue

        rem = applicable[0]

        if isinstance(rem, NativePackage):
            if pm_spec is None:
                unresolved.append(UnresolvedCapability(
                    name=cap.name,
                    reason=f"no supported package manager for '{profile.id}'",
                    manual_hint=_manual_hint(cap, profile),
                ))
                continue
            packages = rem.packages_for(family)
            for arch in rem.foreign_architectures.get(family, ()):
                if arch not in foreign_archs:
                    foreign_archs.append(arch)
            if pm_spec["batch"]:
                for pkg in packages:
                    if pkg not in batch_packages:
                        batch_packages.append(pkg)
                batch_caps.append(cap.name)
                if cap.mandatory:
                    batch_mandatory.append(cap.name)
                if fallback is not None:
                    batch_fallbacks[cap.name] = fallback
            else:
                per_cap_native.append(PlanAction(
                    kind="native-batch",
                    label=f"Install {cap.display_name}",
                    capabilities=(cap.name,),
                    command=tuple(build_install_cmd(list(packages), pm) or ()),
                    needs_sudo=True,
                    packages=packages,
                    fallbacks={cap.name: fallback} if fallback else {},
                    mandatory=(cap.name,) if cap.mandatory else (),
                ))

        elif isinstance(rem, ThirdPartyHelper):
            helper = next((h for h in rem.helper_names if which(h)), None)
            if helper is None:
                if fallback is not None:
                    logger.info("%s: no helper available — using opt-in source build", cap.name)
                    source_actions.append(_source_action(cap, fallback))
                    continue
                unresolved.append(UnresolvedCapability(
                    name=cap.name,
                    reason=f"none of {', '.join(rem.helper_names)} is installed",
                    manual_hint=_helper_hint(rem),
                ))
                continue
            helper_actions.append(PlanAction(
                kind="helper-install",
                label=f"Install {cap.display_name} via {helper}",
                capabilities=(cap.name,),
                command=tuple(build_helper_cmd(helper, rem.package_name) or ()),
                needs_sudo=False,   # helpers elevate themselves
                packages=(rem.package_name,),
                helper=helper,
                fallbacks={cap.name: fallback} if fallback else {},
                mandatory=(cap.name,) if cap.mandatory else (),
            ))

        elif isinstance(rem, BuildFromSource):
            source_actions.append(_source_action(cap, rem))

    actions: list[PlanAction] = []

    for arch in foreign_archs:
        actions.append(PlanAction(
            kind="enable-foreign-arch",
            label=f"Enable {arch} packages",
            command=("dpkg", "--add-architecture", arch),
            needs_sudo=True,
            packages=(arch,),
        ))

    if batch_packages or per_cap_native:
        refresh = build_refresh_cmd(pm)
        if refresh:
            actions.append(PlanAction(
                kind="refresh-metadata",
                label="Refresh package metadata",
                command=tuple(refresh),
                needs_sudo=True,
            ))

    if batch_packages:
        actions.append(PlanAction(
            kind="native-batch",
            label="Install system packages",
            capabilities=tuple(batch_caps),
            command=tuple(build_install_cmd(batch_packages, pm) or ()),
            needs_sudo=True,
            packages=tuple(batch_packages),
            fallbacks=batch_fallbacks,
            mandatory=tuple(batch_mandatory),
        ))
    actions.extend(per_cap_native)
    actions.extend(helper_actions)
    actions.extend(source_actions)

    plan = InstallPlan(family=family, actions=tuple(actions), unresolved=tuple(unresolved))
    logger.info(
        "Resolved plan: %d actions, %d unresolved",
        len(plan.actions), len(plan.unresolved),
    )
    return plan
