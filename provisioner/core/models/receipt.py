"""
InstallReceipt — what installs put on the machine.

Written to ``<state_dir>/install-receipt.json`` at the end of a run and
read back by the uninstall planner so its removal hints name exactly
the packages this installer added. A re-run merges into the previous
receipt: packages added by earlier runs stay recorded.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def _union(first: list[str], second: list[str]) -> list[str]:
    merged: list[str] = []
    for item in (*first, *second):
        if item not in merged:
            merged.append(item)
    return merged


class InstallReceipt(BaseModel):
    version: str = ""
    family: str = "unknown"
    installed_at: str = Field(default_factory=_now_iso)

    installed_files: list[str] = Field(default_factory=list)
    installed_dirs: list[str] = Field(default_factory=list)
    native_packages: list[str] = Field(default_factory=list)
    helper_packages: list[str] = Field(default_factory=list)
    # AUR helper that installed ``helper_packages``
    helper: str | None = None
    source_built: list[str] = Field(default_factory=list)

    config_written: bool = False

    @property
    def records_packages(self) -> bool:
        return bool(self.native_packages or self.helper_packages)

    def merged_over(self, previous: InstallReceipt | None) -> InstallReceipt:
        """This run's receipt with everything ``previous`` recorded kept.

        Lists are unioned (earlier entries first, no duplicates). A
        receipt from another distro family is not merged.
        """
        if previous is None or previous.family != self.family:
            return self
        return self.model_copy(update={
            "installed_files": _union(previous.installed_files, self.installed_files),
            "installed_dirs": _union(previous.installed_dirs, self.installed_dirs),
            "native_packages": _union(previous.native_packages, self.native_packages),
            "helper_packages": _union(previous.helper_packages, self.helper_packages),
            "helper": self.helper or previous.helper,
            "source_built": _union(previous.source_built, self.source_built),
            "config_written": self.config_written or previous.config_written,
        })
