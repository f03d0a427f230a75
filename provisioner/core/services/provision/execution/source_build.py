"""
L4 Execution — Source builder.

Fetch → build → verify → install, each its own failure boundary,
inside an ephemeral working directory that is removed on every exit
path. Failures raise SourceBuildError carrying the step name and the
tool's raw output; whether that is fatal is the caller's decision.

Builds run to completion: no timeout is applied to git, make or cargo.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable

from provisioner.core.errors import ArtifactError, SourceBuildError
from provisioner.core.models import BuildFromSource, BuildVariant
from provisioner.core.services.provision.data.constants import PRIMARY_BINARY
from provisioner.core.services.provision.domain.commands import format_command
from provisioner.core.services.provision.execution.artifacts import place_file
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)

logger = logging.getLogger(__name__)


def _fetch_cmd(remediation: BuildFromSource, dest: Path) -> list[str]:
    return [
        "git", "clone", "--depth", "1", "--branch", remediation.git_ref,
        remediation.repo_ref, str(dest),
    ]


def select_variant(remediation: BuildFromSource, checkout: Path) -> BuildVariant:
    """First variant whose build file the checkout ships.

    Raises:
        SourceBuildError: If the checkout has none of them.
    """
    for variant in remediation.variants:
        if (checkout / variant.build_file).is_file():
            return variant
    expected = ", ".join(v.build_file for v in remediation.variants)
    raise SourceBuildError("build", f"no known build file in checkout (expected {expected})")


def build_from_source(
    remediation: BuildFromSource,
    *,
    bin_dir: Path,
    runner: Callable[..., dict[str, Any]] = run_command,
    token: Any = None,
    which: Callable[[str], str | None] = shutil.which,
) -> Path:
    """Build ``remediation`` and install the result under ``bin_dir``.

    Returns:
        Path of the installed binary.

    Raises:
        SourceBuildError: With ``step`` one of fetch / build / verify /
            install.
    """
    name = remediation.install_name

    if not which("git"):
        raise SourceBuildError("fetch", "git is not installed")

    with tempfile.TemporaryDirectory(prefix=f"{name}-build-") as workdir:
        checkout = Path(workdir) / "src"

        # ── 1. Fetch ──
        logger.info("Fetching %s at %s", remediation.repo_ref, remediation.git_ref)
        fetch = _fetch_cmd(remediation, checkout)
        result = runner(fetch)
        if not result.get("ok"):
            raise SourceBuildError(
                "fetch", f"{format_command(fetch)} failed", command_output(result),
            )

        # ── 2. Build ──
        variant = select_variant(remediation, checkout)
        tool = variant.build_command[0]
        if not which(tool):
            raise SourceBuildError("build", f"{tool} is not installed")
        logger.info("Building %s: %s", name, format_command(variant.build_command))
        result = runner(list(variant.build_command), cwd=str(checkout))
        if not result.get("ok"):
            raise SourceBuildError(
                "build",
                f"{format_command(variant.build_command)} failed",
                command_output(result),
            )

        # ── 3. Verify ──
        produced = checkout / variant.produced_artifact_path
        if not produced.is_file():
            raise SourceBuildError(
                "verify",
                f"expected artifact {variant.produced_artifact_path} was not produced",
            )

        # ── 4. Install ──
        destination = bin_dir / name
        try:
            place_file(produced, destination, 0o755, runner=runner, token=token)
        except ArtifactError as e:
            raise SourceBuildError("install", str(e)) from e

    # ── 5. Cleanup ── (TemporaryDirectory, on every exit path)
    logger.info("Installed %s from source", destination)
    return destination


def build_in_tree(
    source_dir: Path,
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Callable[[str], str | None] = shutil.which,
) -> Path:
    """Compile the primary binary from a local checkout with cargo.

    Always mandatory: any failure raises.

    Returns:
        Path to ``target/release/masmide`` inside ``source_dir``.

    Raises:
        SourceBuildError: If cargo is missing, the build fails, or the
            binary is not produced.
    """
    if not which("cargo"):
        raise SourceBuildError("build", "cargo is not installed (install Rust from https://rustup.rs)")

    cmd = ["cargo", "build", "--release"]
    logger.info("Building %s in %s", PRIMARY_BINARY, source_dir)
    result = runner(cmd, cwd=str(source_dir))
    if not result.get("ok"):
        raise SourceBuildError("build", f"{format_command(cmd)} failed", command_output(result))

    produced = source_dir / "target" / "release" / PRIMARY_BINARY
    if not produced.is_file():
        raise SourceBuildError("verify", f"{produced} was not produced")
    return produced
