"""
Tests for the environment prober — os-release parsing, family
classification, marker files, and architecture mapping.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from provisioner.core.errors import UnsupportedArchitectureError
from provisioner.core.services.provision.detection.environment import (
    detect_architecture,
    probe_environment,
)
from provisioner.core.services.provision.domain.distro import (
    classify_os_release,
    family_for_id,
    parse_os_release,
)


def _write(root: Path, rel: str, content: str = "") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


class TestParseOsRelease:
    """Tests for os-release parsing."""

    def test_quoted_and_unquoted_values(self):
        fields = parse_os_release(textwrap.dedent("""\
            NAME="Ubuntu"
            ID=ubuntu
            ID_LIKE=debian
            PRETTY_NAME='Ubuntu 24.04 LTS'
        """))
        assert fields["ID"] == "ubuntu"
        assert fields["ID_LIKE"] == "debian"
        assert fields["PRETTY_NAME"] == "Ubuntu 24.04 LTS"

    def test_comments_and_garbage_skipped(self):
        fields = parse_os_release('# comment\n\nnot a pair\nID=arch\nBROKEN="unterminated\n')
        assert fields == {"ID": "arch"}


class TestFamilyClassification:
    """Tests for id → family mapping."""

    @pytest.mark.parametrize("distro_id,family", [
        ("arch", "arch"),
        ("manjaro", "arch"),
        ("endeavouros", "arch"),
        ("garuda", "arch"),
        ("debian", "debian"),
        ("ubuntu", "debian"),
        ("linuxmint", "debian"),
        ("pop", "debian"),
        ("kali", "debian"),
        ("fedora", "fedora"),
        ("rocky", "fedora"),
        ("opensuse-tumbleweed", "suse"),
        ("opensuse-leap", "suse"),
        ("sles", "suse"),
    ])
    def test_known_ids(self, distro_id, family):
        assert family_for_id(distro_id) == family

    def test_unknown_id(self):
        assert family_for_id("nixos") is None
        assert family_for_id("") is None

    def test_id_like_fallback(self):
        """A derivative not in the table resolves through ID_LIKE."""
        assert classify_os_release({"ID": "neon", "ID_LIKE": "ubuntu debian"}) == "debian"

    def test_id_wins_over_id_like(self):
        assert classify_os_release({"ID": "manjaro", "ID_LIKE": "debian"}) == "arch"


class TestProbeEnvironment:
    """Tests for the full probe against a fake filesystem root."""

    def test_os_release(self, tmp_path: Path):
        _write(tmp_path, "etc/os-release", 'ID=ubuntu\nPRETTY_NAME="Ubuntu 24.04"\n')
        profile = probe_environment(root=tmp_path, machine="x86_64")
        assert profile.id == "ubuntu"
        assert profile.family == "debian"
        assert profile.package_manager == "apt"
        assert profile.arch == "x86_64"
        assert profile.name == "Ubuntu 24.04"

    def test_usr_lib_os_release(self, tmp_path: Path):
        _write(tmp_path, "usr/lib/os-release", "ID=fedora\n")
        profile = probe_environment(root=tmp_path, machine="x86_64")
        assert profile.family == "fedora"
        assert profile.package_manager == "dnf"

    def test_marker_file_when_os_release_unknown(self, tmp_path: Path):
        _write(tmp_path, "etc/os-release", "ID=customlinux\n")
        _write(tmp_path, "etc/arch-release")
        profile = probe_environment(root=tmp_path, machine="x86_64")
        assert profile.family == "arch"
        assert profile.id == "customlinux"
        assert profile.package_manager == "pacman"

    def test_marker_file_without_os_release(self, tmp_path: Path):
        _write(tmp_path, "etc/debian_version", "12.5\n")
        profile = probe_environment(root=tmp_path, machine="x86_64")
        assert profile.family == "debian"
        assert profile.id == "debian"

    def test_unknown_family(self, tmp_path: Path):
        profile = probe_environment(root=tmp_path, machine="x86_64")
        assert profile.family == "unknown"
        assert profile.package_manager == "none"
        assert profile.known is False

    def test_deterministic(self, tmp_path: Path):
        _write(tmp_path, "etc/os-release", "ID=debian\n")
        first = probe_environment(root=tmp_path, machine="aarch64")
        second = probe_environment(root=tmp_path, machine="aarch64")
        assert first == second

    def test_profile_is_frozen(self, tmp_path: Path):
        profile = probe_environment(root=tmp_path, machine="x86_64")
        with pytest.raises(Exception):
            profile.family = "arch"


class TestArchitecture:
    """Tests for machine type mapping."""

    @pytest.mark.parametrize("machine,arch", [
        ("x86_64", "x86_64"),
        ("amd64", "x86_64"),
        ("aarch64", "aarch64"),
        ("arm64", "aarch64"),
    ])
    def test_supported(self, machine, arch):
        assert detect_architecture(machine) == arch

    @pytest.mark.parametrize("machine", ["armv7l", "i686", "riscv64", ""])
    def test_unsupported_is_fatal(self, machine):
        with pytest.raises(UnsupportedArchitectureError):
            detect_architecture(machine)

    def test_unsupported_aborts_probe(self, tmp_path: Path):
        _write(tmp_path, "etc/os-release", "ID=debian\n")
        with pytest.raises(UnsupportedArchitectureError, match="armv7l"):
            probe_environment(root=tmp_path, machine="armv7l")
