"""
L0 Data — The toolchain capability table.

Each capability declares how to probe for it and, in preference order,
how to remediate it per family. The resolver consumes this table; no
stage branches on distro names itself.
"""

from __future__ import annotations

from provisioner.core.models import (
    BuildFromSource,
    BuildVariant,
    Capability,
    NativePackage,
    Probe,
    ThirdPartyHelper,
)
from provisioner.core.services.provision.data.constants import (
    ASSEMBLER_BINARY,
    FOREIGN_ARCH_I386,
    LINKER_CANDIDATES,
)

DEFAULT_ASSEMBLER_REPO = "https://github.com/Baron-von-Riedesel/JWasm.git"
DEFAULT_ASSEMBLER_REF = "v2.17"

SOURCE_TOOLCHAIN = Capability(
    name="source-toolchain",
    label="Build toolchain (git, make, gcc)",
    probe=Probe(candidates=("git", "make", "gcc"), require_all=True),
    remediations=(
        NativePackage(per_family={
            "arch": ("base-devel", "git"),
            "debian": ("build-essential", "git"),
            "fedora": ("gcc", "make", "git"),
            "suse": ("gcc", "make", "git"),
        }),
    ),
)

PE_LINKER = Capability(
    name="pe-linker",
    label="MinGW PE linker",
    probe=Probe(candidates=LINKER_CANDIDATES),
    remediations=(
        NativePackage(per_family={
            "arch": ("mingw-w64-gcc",),
            "debian": ("mingw-w64",),
            "fedora": ("mingw32-binutils", "mingw64-binutils"),
            "suse": ("mingw32-cross-binutils", "mingw64-cross-binutils"),
        }),
    ),
)

BINARY_RUNNER = Capability(
    name="binary-runner",
    label="Wine",
    probe=Probe(candidates=("wine",)),
    remediations=(
        NativePackage(
            per_family={
                "arch": ("wine",),
                "debian": ("wine64", "wine32"),
                "fedora": ("wine",),
                "suse": ("wine",),
            },
            foreign_architectures={"debian": (FOREIGN_ARCH_I386,)},
        ),
    ),
)


def assembler_capability(
    repo: str = DEFAULT_ASSEMBLER_REPO,
    ref: str = DEFAULT_ASSEMBLER_REF,
) -> Capability:
    """The assembler capability, with its source build pinned to ``repo``/``ref``."""
    return Capability(
        name="assembler",
        label="JWasm assembler",
        probe=Probe(candidates=(ASSEMBLER_BINARY,), version_args=("-?",)),
        remediations=(
            NativePackage(per_family={"debian": (ASSEMBLER_BINARY,)}),
            ThirdPartyHelper(
                helper_names=("yay", "paru"),
                package_name=ASSEMBLER_BINARY,
                families=("arch",),
            ),
            BuildFromSource(
                repo_ref=repo,
                git_ref=ref,
                variants=(
                    BuildVariant(
                        build_file="GccUnix.mak",
                        build_command=("make", "-f", "GccUnix.mak"),
                        produced_artifact_path="build/GccUnixR/jwasm",
                    ),
                    BuildVariant(
                        build_file="Makefile",
                        build_command=("make",),
                        produced_artifact_path=ASSEMBLER_BINARY,
                    ),
                ),
                install_name=ASSEMBLER_BINARY,
                families=("fedora", "suse", "unknown"),
            ),
        ),
        bundled_binary=ASSEMBLER_BINARY,
    )


RUST_TOOLCHAIN = Capability(
    name="rust-toolchain",
    label="Rust toolchain (cargo)",
    probe=Probe(candidates=("cargo",)),
    remediations=(
        NativePackage(per_family={
            "arch": ("rust",),
            "debian": ("cargo",),
            "fedora": ("cargo",),
            "suse": ("cargo",),
        }),
    ),
    mandatory=True,
)


def toolchain_capabilities(
    *,
    assembler_repo: str = DEFAULT_ASSEMBLER_REPO,
    assembler_ref: str = DEFAULT_ASSEMBLER_REF,
    include_rust: bool = False,
) -> list[Capability]:
    """Capabilities the installed editor needs, in declaration order.

    ``include_rust`` adds the cargo toolchain, needed only when the
    primary binary is compiled from a source checkout.
    """
    caps = [
        SOURCE_TOOLCHAIN,
        assembler_capability(assembler_repo, assembler_ref),
        PE_LINKER,
        BINARY_RUNNER,
    ]
    if include_rust:
        caps.append(RUST_TOOLCHAIN)
    return caps
