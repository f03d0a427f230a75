"""
L4 Execution — Artifact installer.

Copies the primary binary, bundled executables and data libraries into
the canonical system paths. Overwrite-on-copy: re-running with the same
inputs leaves identical files and modes.

When the destination directory is writable by this process the copy is
done in-process (temp file + rename). Otherwise it goes through the
privilege token as ``install -D -m MODE``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from provisioner.core.errors import ArtifactError
from provisioner.core.models import ProvisionWarning
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    """One file to place."""

    source: Path
    destination: Path
    mode: int = 0o755
    mandatory: bool = False
    label: str = ""


@dataclass(frozen=True)
class ArtifactGlob:
    """A group of optional files matched by glob patterns.

    Zero matches is not an error.
    """

    source_dir: Path
    patterns: tuple[str, ...]
    destination_dir: Path
    mode: int = 0o644
    label: str = ""


@dataclass
class InstallResult:
    installed: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    warnings: list[ProvisionWarning] = field(default_factory=list)


def _writable_dir(directory: Path) -> bool:
    """True when ``directory`` (or its nearest existing parent) is writable."""
    probe = directory
    while not probe.exists():
        if probe.parent == probe:
            return False
        probe = probe.parent
    return os.access(probe, os.W_OK | os.X_OK)


def place_file(
    source: Path,
    destination: Path,
    mode: int,
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    token: Any = None,
) -> None:
    """Copy ``source`` to ``destination`` with ``mode``, overwriting.

    Raises:
        ArtifactError: If the copy fails.
    """
    if _writable_dir(destination.parent):
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
        )
        os.close(fd)
        tmp = Path(tmp_path)
        try:
            shutil.copyfile(source, tmp)
            os.chmod(tmp, mode)
            os.replace(tmp, destination)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise ArtifactError(f"Cannot install {destination}: {e}") from e
        logger.debug("Placed %s → %s (%o)", source, destination, mode)
        return

    cmd = ["install", "-D", "-m", format(mode, "o"), str(source), str(destination)]
    result = runner(cmd, needs_sudo=True, token=token)
    if not result.get("ok"):
        raise ArtifactError(f"Cannot install {destination}: {command_output(result)}")
    logger.debug("Placed %s → %s (%o, elevated)", source, destination, mode)


def install_artifacts(
    artifacts: list[Artifact],
    globs: list[ArtifactGlob] | None = None,
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    token: Any = None,
) -> InstallResult:
    """Place every artifact.

    Mandatory sources are checked before anything is copied, so a
    missing primary binary leaves nothing half-installed.

    Raises:
        ArtifactError: If a mandatory source is missing or cannot be placed.
    """
    missing = [a for a in artifacts if a.mandatory and not a.source.is_file()]
    if missing:
        names = ", ".join(str(a.source) for a in missing)
        raise ArtifactError(f"Mandatory artifact missing: {names}")

    result = InstallResult()

    for art in artifacts:
        if not art.source.is_file():
            logger.info("Optional artifact %s not present — skipping", art.source)
            result.skipped.append(art.destination)
            result.warnings.append(ProvisionWarning(
                stage="artifacts",
                message=f"{art.label or art.source.name} not found at {art.source}; skipped",
            ))
            continue
        try:
            place_file(art.source, art.destination, art.mode, runner=runner, token=token)
        except ArtifactError as e:
            if art.mandatory:
                raise
            result.warnings.append(ProvisionWarning(stage="artifacts", message=str(e)))
            continue
        result.installed.append(art.destination)

    for group in globs or []:
        matches: list[Path] = []
        if group.source_dir.is_dir():
            for pattern in group.patterns:
                for path in sorted(group.source_dir.glob(pattern)):
                    if path.is_file() and path not in matches:
                        matches.append(path)
        if not matches:
            logger.info("No %s files in %s", group.label or "optional", group.source_dir)
            continue
        for path in matches:
            dest = group.destination_dir / path.name
            try:
                place_file(path, dest, group.mode, runner=runner, token=token)
            except ArtifactError as e:
                result.warnings.append(ProvisionWarning(stage="artifacts", message=str(e)))
                continue
            result.installed.append(dest)

    logger.info("Installed %d files", len(result.installed))
    return result


def remove_path(
    path: Path,
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    token: Any = None,
) -> dict[str, Any]:
    """Delete a file or directory tree, elevating when needed.

    Returns a runner-style result dict; never raises.
    """
    if not path.exists() and not path.is_symlink():
        return {"ok": True, "skipped": True}

    if _writable_dir(path.parent):
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
            return {"ok": True}
        except OSError as e:
            return {"ok": False, "error": str(e)}

    return runner(["rm", "-rf", "--", str(path)], needs_sudo=True, token=token)
