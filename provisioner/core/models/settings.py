"""
InstallerSettings — every tunable of the provisioning pipeline.

Defaults match the canonical filesystem layout; a provision.yml can
override any of them (see provisioner.core.config.loader).
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field


def _xdg_dir(env_var: str, fallback: str) -> Path:
    base = os.environ.get(env_var)
    root = Path(base) if base else Path.home() / fallback
    return root / "masmide"


def _default_config_dir() -> Path:
    return _xdg_dir("XDG_CONFIG_HOME", ".config")


def _default_state_dir() -> Path:
    return _xdg_dir("XDG_STATE_HOME", ".local/state")


class InstallerSettings(BaseModel):
    """Filesystem layout, remote sources and timeouts."""

    # Canonical system locations
    bin_dir: Path = Path("/usr/local/bin")
    lib_dir: Path = Path("/usr/local/lib/irvine")
    inc_dir: Path = Path("/usr/local/include/irvine")

    # User-scoped locations
    user_config_dir: Path = Field(default_factory=_default_config_dir)
    state_dir: Path = Field(default_factory=_default_state_dir)

    # Remote sources
    release_repo: str = "KM-Alee/masmide"
    assembler_repo: str = "https://github.com/Baron-von-Riedesel/JWasm.git"
    assembler_ref: str = Field(default="v2.17", min_length=1)

    # Timeouts (seconds)
    probe_timeout: float = Field(default=10, gt=0)
    privilege_renewal_interval: float = Field(default=50, gt=0)
    http_timeout: float = Field(default=30, gt=0)

    allow_source_fallback: bool = False

    @property
    def config_file(self) -> Path:
        return self.user_config_dir / "config.toml"

    @property
    def templates_dir(self) -> Path:
        return self.user_config_dir / "templates"

    @property
    def receipt_file(self) -> Path:
        return self.state_dir / "install-receipt.json"
