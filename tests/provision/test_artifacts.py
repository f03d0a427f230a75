"""
Tests for the artifact installer — overwrite semantics, mandatory
preflight, optional files and glob groups.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from provisioner.core.errors import ArtifactError
from provisioner.core.services.provision.execution import artifacts as artifacts_mod
from provisioner.core.services.provision.execution.artifacts import (
    Artifact,
    ArtifactGlob,
    install_artifacts,
    place_file,
    remove_path,
)
from provisioner.core.services.provision.execution.privilege import PrivilegeToken
from tests.provision.simulated_hosts import FakeHost


def _mode(path: Path) -> int:
    return os.stat(path).st_mode & 0o777


class TestPlaceFile:
    """Tests for copying one file into place."""

    def test_in_process_copy(self, tmp_path: Path):
        src = tmp_path / "masmide"
        src.write_bytes(b"binary")
        dest = tmp_path / "bin" / "masmide"
        place_file(src, dest, 0o755, runner=FakeHost().run)
        assert dest.read_bytes() == b"binary"
        assert _mode(dest) == 0o755
        assert [p.name for p in dest.parent.iterdir()] == ["masmide"]

    def test_overwrites(self, tmp_path: Path):
        src = tmp_path / "new"
        src.write_bytes(b"v2")
        dest = tmp_path / "dest"
        dest.write_bytes(b"v1")
        place_file(src, dest, 0o644)
        assert dest.read_bytes() == b"v2"
        assert _mode(dest) == 0o644

    def test_elevated_copy(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(artifacts_mod, "_writable_dir", lambda d: False)
        host = FakeHost()
        src = tmp_path / "masmide"
        src.write_bytes(b"binary")
        dest = tmp_path / "sys" / "masmide"
        place_file(src, dest, 0o755, runner=host.run, token=PrivilegeToken("sudo"))
        assert host.commands == [
            ["sudo", "-n", "install", "-D", "-m", "755", str(src), str(dest)],
        ]
        assert dest.read_bytes() == b"binary"

    def test_elevated_failure(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(artifacts_mod, "_writable_dir", lambda d: False)

        def failing(cmd, **kw):
            return {"ok": False, "returncode": 1, "stdout": "", "stderr": "install: denied"}

        src = tmp_path / "x"
        src.write_bytes(b"")
        with pytest.raises(ArtifactError, match="install: denied"):
            place_file(src, tmp_path / "y", 0o644, runner=failing)


class TestInstallArtifacts:
    """Tests for placing a full artifact set."""

    def test_mandatory_missing_installs_nothing(self, tmp_path: Path):
        present = tmp_path / "jwasm"
        present.write_bytes(b"jwasm")
        dest = tmp_path / "bin"
        arts = [
            Artifact(present, dest / "jwasm"),
            Artifact(tmp_path / "masmide", dest / "masmide", mandatory=True),
        ]
        with pytest.raises(ArtifactError, match="Mandatory artifact missing"):
            install_artifacts(arts)
        assert not dest.exists()

    def test_optional_missing_is_warning(self, tmp_path: Path):
        primary = tmp_path / "masmide"
        primary.write_bytes(b"m")
        dest = tmp_path / "bin"
        result = install_artifacts([
            Artifact(primary, dest / "masmide", mandatory=True),
            Artifact(tmp_path / "jwasm", dest / "jwasm", label="bundled JWasm"),
        ])
        assert result.installed == [dest / "masmide"]
        assert result.skipped == [dest / "jwasm"]
        assert "bundled JWasm" in result.warnings[0].message

    def test_idempotent(self, tmp_path: Path):
        primary = tmp_path / "masmide"
        primary.write_bytes(b"m")
        dest = tmp_path / "bin" / "masmide"
        install_artifacts([Artifact(primary, dest, mandatory=True)])
        first = (dest.read_bytes(), _mode(dest))
        install_artifacts([Artifact(primary, dest, mandatory=True)])
        assert (dest.read_bytes(), _mode(dest)) == first

    def test_glob_patterns_case_variants(self, tmp_path: Path):
        src = tmp_path / "Irvine"
        src.mkdir()
        for name in ("Irvine32.lib", "Kernel32.Lib", "Irvine32.inc", "README.txt"):
            (src / name).write_bytes(b"x")
        lib = tmp_path / "lib"
        result = install_artifacts([], [
            ArtifactGlob(src, ("*.lib", "*.Lib", "*.obj"), lib, label="library"),
        ])
        assert sorted(p.name for p in result.installed) == ["Irvine32.lib", "Kernel32.Lib"]
        assert _mode(lib / "Irvine32.lib") == 0o644
        assert not (lib / "README.txt").exists()

    def test_glob_zero_matches_is_fine(self, tmp_path: Path):
        result = install_artifacts([], [
            ArtifactGlob(tmp_path / "nope", ("*.lib",), tmp_path / "lib"),
        ])
        assert result.installed == []
        assert result.warnings == []


class TestRemovePath:
    """Tests for deleting installed paths."""

    def test_file_and_tree(self, tmp_path: Path):
        f = tmp_path / "masmide"
        f.write_bytes(b"")
        d = tmp_path / "irvine"
        (d / "sub").mkdir(parents=True)
        assert remove_path(f)["ok"]
        assert remove_path(d)["ok"]
        assert not f.exists() and not d.exists()

    def test_missing_is_skipped(self, tmp_path: Path):
        assert remove_path(tmp_path / "ghost") == {"ok": True, "skipped": True}

    def test_elevated(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(artifacts_mod, "_writable_dir", lambda d: False)
        host = FakeHost()
        target = tmp_path / "lib"
        target.mkdir()
        result = remove_path(target, runner=host.run, token=PrivilegeToken("sudo"))
        assert result["ok"]
        assert host.commands == [["sudo", "-n", "rm", "-rf", "--", str(target)]]
