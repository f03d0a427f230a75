"""
DistroProfile — the detected identity of the host.

Computed once per run by the environment prober and handed to every
later stage. Frozen: nothing downstream may re-derive or patch it.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Family = Literal["arch", "debian", "fedora", "suse", "unknown"]
PackageManagerId = Literal["pacman", "apt", "dnf", "zypper", "none"]
Architecture = Literal["x86_64", "aarch64"]


class DistroProfile(BaseModel):
    """Identity and family classification of the host distribution."""

    model_config = ConfigDict(frozen=True)

    id: str = "unknown"                     # os-release ID, or marker-derived
    name: str = ""                          # PRETTY_NAME for display
    family: Family = "unknown"
    package_manager: PackageManagerId = "none"
    arch: Architecture = "x86_64"

    @property
    def known(self) -> bool:
        """Whether the family maps to a supported package manager."""
        return self.family != "unknown"
