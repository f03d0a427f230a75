"""
Capability and Remediation models — what the toolchain needs.

A Capability is a named toolchain requirement with a probe and an
ordered list of remediations. Remediations are a tagged union on
``kind``; each one decides for itself whether it applies to a family.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from provisioner.core.models.profile import Family


class Probe(BaseModel):
    """How to check that a capability is present.

    ``candidates`` are binary names searched on PATH in order; the first
    hit wins. With ``require_all`` every candidate must be present
    (e.g. a build toolchain made of several binaries).
    """

    model_config = ConfigDict(frozen=True)

    candidates: tuple[str, ...]
    version_args: tuple[str, ...] = ("--version",)
    require_all: bool = False


class NativePackage(BaseModel):
    """Install through the distro's own package manager."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["native"] = "native"
    per_family: dict[str, tuple[str, ...]]
    # foreign architectures the packages need (dpkg multiarch), per family
    foreign_architectures: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    def applies_to(self, family: Family) -> bool:
        return bool(self.per_family.get(family))

    def packages_for(self, family: Family) -> tuple[str, ...]:
        return self.per_family.get(family, ())


class ThirdPartyHelper(BaseModel):
    """Install through a community helper (e.g. an AUR helper)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["helper"] = "helper"
    helper_names: tuple[str, ...]
    package_name: str
    families: tuple[str, ...]

    def applies_to(self, family: Family) -> bool:
        return family in self.families


class BuildVariant(BaseModel):
    """One way a checkout can be built, picked by the build file it ships."""

    model_config = ConfigDict(frozen=True)

    build_file: str                     # relative to the checkout root
    build_command: tuple[str, ...]
    produced_artifact_path: str         # relative to the checkout root


class BuildFromSource(BaseModel):
    """Compile from a pinned source reference.

    ``variants`` are tried in order; the first whose ``build_file``
    exists in the checkout is built. ``families`` empty means the build
    applies to any family, including unknown ones.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["source"] = "source"
    repo_ref: str
    git_ref: str = Field(min_length=1)  # tag or branch for ``git clone --branch``
    variants: tuple[BuildVariant, ...] = Field(min_length=1)
    install_name: str                   # file name under the binary directory
    families: tuple[str, ...] = ()

    def applies_to(self, family: Family) -> bool:
        return not self.families or family in self.families


Remediation = Annotated[
    Union[NativePackage, ThirdPartyHelper, BuildFromSource],
    Field(discriminator="kind"),
]


class Capability(BaseModel):
    """A named toolchain requirement."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str = ""
    probe: Probe
    remediations: tuple[Remediation, ...] = ()
    mandatory: bool = False
    # binary name a release bundle may ship to satisfy this capability
    bundled_binary: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.name

    def source_build(self) -> BuildFromSource | None:
        """The capability's source-build remediation, if it declares one."""
        for rem in self.remediations:
            if isinstance(rem, BuildFromSource):
                return rem
        return None
