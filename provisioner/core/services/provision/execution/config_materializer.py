"""
L4 Execution — Configuration materializer.

Writes the editor's config.toml only when none exists. Existing user
edits are never touched. Environment-specific values (the linker name,
the data-library paths) are probed at write time; the document is
always written, with a best guess where probing finds nothing.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import tomli_w

from provisioner.core.models import ConfigDocument, InstallerSettings, ToolchainSection
from provisioner.core.services.provision.data.constants import (
    ASSEMBLER_BINARY,
    LINKER_CANDIDATES,
)

logger = logging.getLogger(__name__)

HEADER = "# masmide configuration\n# Generated by masmide-provision; edit freely.\n\n"


@dataclass
class MaterializeResult:
    written: bool
    path: Path
    linker: str | None = None


@dataclass
class TemplateResult:
    copied: list[Path] = field(default_factory=list)
    kept: list[Path] = field(default_factory=list)


def detect_linker(which: Callable[[str], str | None] = shutil.which) -> str:
    """First linker candidate on PATH, else the first candidate."""
    for candidate in LINKER_CANDIDATES:
        if which(candidate):
            return candidate
    return LINKER_CANDIDATES[0]


def build_document(
    settings: InstallerSettings,
    *,
    which: Callable[[str], str | None] = shutil.which,
) -> ConfigDocument:
    """Default ConfigDocument for this host."""
    return ConfigDocument(
        toolchain=ToolchainSection(
            jwasm_path=ASSEMBLER_BINARY,
            linker_path=detect_linker(which),
            wine_path="wine",
            irvine_lib_path=str(settings.lib_dir),
            irvine_inc_path=str(settings.inc_dir),
        ),
    )


def render(document: ConfigDocument) -> str:
    return HEADER + tomli_w.dumps(document.to_toml_dict())


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".config_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def materialize(
    target_path: Path,
    *,
    settings: InstallerSettings,
    which: Callable[[str], str | None] = shutil.which,
) -> MaterializeResult:
    """Write the default config at ``target_path`` unless one exists.

    Returns:
        ``written=False`` immediately when a file is already there.
    """
    if target_path.exists():
        logger.info("Config already exists at %s — leaving it untouched", target_path)
        return MaterializeResult(written=False, path=target_path)

    document = build_document(settings, which=which)
    _atomic_write(target_path, render(document))
    logger.info("Wrote default config to %s", target_path)
    return MaterializeResult(
        written=True, path=target_path, linker=document.toolchain.linker_path,
    )


def load_config(path: Path) -> ConfigDocument:
    """Read a config.toml; unknown keys are preserved on the model.

    Raises:
        tomllib.TOMLDecodeError: If the file is not valid TOML.
        FileNotFoundError: If it does not exist.
    """
    with path.open("rb") as f:
        data = tomllib.load(f)
    return ConfigDocument.model_validate(data)


def install_templates(source_dir: Path, target_dir: Path) -> TemplateResult:
    """Copy template files, never overwriting ones the user already has."""
    result = TemplateResult()
    if not source_dir.is_dir():
        return result
    target_dir.mkdir(parents=True, exist_ok=True)
    for src in sorted(source_dir.iterdir()):
        if not src.is_file():
            continue
        dest = target_dir / src.name
        if dest.exists():
            result.kept.append(dest)
            continue
        shutil.copyfile(src, dest)
        result.copied.append(dest)
    logger.info("Templates: %d copied, %d kept", len(result.copied), len(result.kept))
    return result
