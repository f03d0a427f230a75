"""
End-to-end install runs against simulated hosts.

Each scenario drives ``run_install`` with a FakeHost standing in for
PATH and every subprocess, and asserts on the resulting filesystem,
the commands that ran, and the end-of-run report.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from provisioner.core.errors import (
    ArtifactError,
    PrivilegeError,
    ProvisionError,
    SourceBuildError,
    VersionResolutionError,
)
from provisioner.core.persistence.receipt import load_receipt
from provisioner.core.services.provision.domain.confirmation import PresetConfirmer
from provisioner.core.services.provision.execution.privilege import PrivilegeBroker
from provisioner.core.services.provision.execution.release import release_archive_url
from provisioner.core.services.provision.orchestration.orchestrator import (
    InstallRequest,
    run_install,
)
from provisioner.core.services.provision.orchestration.uninstall import run_uninstall
from tests.provision.simulated_hosts import (
    FULL_TOOLCHAIN,
    PROFILES,
    build_release_dir,
    build_release_tarball,
)


def _serve_release(fake_github, tmp_path: Path, **layout) -> None:
    release = build_release_dir(tmp_path / "dist", **layout)
    archive = build_release_tarball(release, tmp_path / "release.tar.gz")
    url = release_archive_url("KM-Alee/masmide", "v0.2.0", "x86_64")
    fake_github["archives"][url] = archive


def _install(request, settings, host, broker, profile, confirmer=None):
    return run_install(
        request,
        settings=settings,
        confirmer=confirmer or PresetConfirmer(),
        runner=host.run,
        which=host.which,
        broker=broker,
        profile=profile,
    )


class TestDebianFromRelease:
    """A bare Debian host installing a downloaded release."""

    def test_full_install(self, settings, make_host, root_broker, fake_github, tmp_path):
        _serve_release(fake_github, tmp_path, bundled_jwasm=False)
        host = make_host(binaries={"tar"})
        outcome = _install(
            InstallRequest(version="v0.2.0"), settings, host, root_broker(host), PROFILES["debian"],
        )

        assert outcome.mode == "release"
        assert outcome.version == "v0.2.0"
        assert outcome.plan.packages == [
            "build-essential", "git", "jwasm", "mingw-w64", "wine64", "wine32",
        ]
        assert outcome.plan.actions[0].kind == "enable-foreign-arch"
        assert not host.ran("git", "clone")
        assert outcome.report.all_satisfied

        assert (settings.bin_dir / "masmide").read_bytes() == b"\x7fELF masmide v0.2.0"
        assert (settings.lib_dir / "Irvine32.lib").is_file()
        assert (settings.lib_dir / "Kernel32.Lib").is_file()
        assert (settings.inc_dir / "SmallWin.inc").is_file()
        assert not (settings.lib_dir / "README.txt").exists()
        assert (settings.templates_dir / "hello.asm").is_file()
        assert outcome.config.written
        assert outcome.config.linker == "i686-w64-mingw32-ld"

    def test_only_warning_is_missing_bundle(self, settings, make_host, root_broker, fake_github, tmp_path):
        _serve_release(fake_github, tmp_path, bundled_jwasm=False)
        host = make_host(binaries={"tar"})
        outcome = _install(
            InstallRequest(version="v0.2.0"), settings, host, root_broker(host), PROFILES["debian"],
        )
        assert [w.stage for w in outcome.warnings] == ["artifacts"]
        assert "bundled JWasm" in outcome.warnings[0].message

    def test_receipt_written(self, settings, make_host, root_broker, fake_github, tmp_path):
        _serve_release(fake_github, tmp_path, bundled_jwasm=False)
        host = make_host(binaries={"tar"})
        _install(InstallRequest(version="v0.2.0"), settings, host, root_broker(host), PROFILES["debian"])
        receipt = load_receipt(settings.receipt_file)
        assert receipt.version == "v0.2.0"
        assert receipt.family == "debian"
        assert "jwasm" in receipt.native_packages
        assert str(settings.bin_dir / "masmide") in receipt.installed_files
        assert receipt.config_written is True

    def test_latest_version_resolved(self, settings, make_host, root_broker, fake_github, tmp_path):
        _serve_release(fake_github, tmp_path)
        host = make_host(binaries=set(FULL_TOOLCHAIN))
        outcome = _install(InstallRequest(), settings, host, root_broker(host), PROFILES["debian"])
        assert outcome.version == "v0.2.0"
        assert fake_github["requests"][0].endswith("/releases/latest")

    def test_unresolvable_version_aborts_before_privilege(self, settings, make_host, fake_github):
        fake_github["tag"] = None
        host = make_host(binaries={"tar"})
        broker = PrivilegeBroker(runner=host.run, geteuid=lambda: 1000)
        with pytest.raises(VersionResolutionError):
            _install(InstallRequest(), settings, host, broker, PROFILES["debian"])
        assert host.commands == []


class TestRerun:
    """A second run with the same inputs changes nothing."""

    def test_idempotent(self, settings, make_host, root_broker, fake_github, tmp_path):
        _serve_release(fake_github, tmp_path, bundled_jwasm=False)
        host = make_host(binaries={"tar"})
        request = InstallRequest(version="v0.2.0")
        _install(request, settings, host, root_broker(host), PROFILES["debian"])

        config_before = settings.config_file.read_bytes()
        binary_before = (settings.bin_dir / "masmide").read_bytes()
        installs_before = list(host.installed_packages)

        confirmer = PresetConfirmer()
        outcome = _install(request, settings, host, root_broker(host), PROFILES["debian"], confirmer)

        assert confirmer.asked == ["proceed-install"]
        assert outcome.plan.empty
        assert outcome.plan.unresolved == ()
        assert outcome.config.written is False
        assert settings.config_file.read_bytes() == config_before
        assert (settings.bin_dir / "masmide").read_bytes() == binary_before
        assert host.installed_packages == installs_before
        assert outcome.report.all_satisfied

    def test_receipt_keeps_packages_from_first_run(self, settings, make_host, root_broker, fake_github, tmp_path):
        _serve_release(fake_github, tmp_path, bundled_jwasm=False)
        host = make_host(binaries={"tar"})
        request = InstallRequest(version="v0.2.0")
        _install(request, settings, host, root_broker(host), PROFILES["debian"])
        _install(request, settings, host, root_broker(host), PROFILES["debian"])

        receipt = load_receipt(settings.receipt_file)
        assert receipt.native_packages == [
            "build-essential", "git", "jwasm", "mingw-w64", "wine64", "wine32",
        ]
        assert receipt.installed_files.count(str(settings.bin_dir / "masmide")) == 1

        outcome = run_uninstall(
            settings=settings,
            confirmer=PresetConfirmer({"proceed-uninstall": True}),
            runner=host.run,
            broker=root_broker(host),
            profile=PROFILES["debian"],
        )
        assert outcome.hints == [
            "sudo apt remove build-essential git jwasm mingw-w64 wine64 wine32",
        ]


class TestArchWithoutHelper:
    """Arch host with no AUR helper installing a local release."""

    def test_assembler_stays_manual(self, settings, make_host, root_broker, tmp_path):
        release = build_release_dir(tmp_path / "dist", bundled_jwasm=False)
        host = make_host()
        outcome = _install(
            InstallRequest(source_dir=release), settings, host, root_broker(host), PROFILES["arch"],
        )

        assert outcome.mode == "local"
        assert [u.name for u in outcome.plan.unresolved] == ["assembler"]
        assert (settings.bin_dir / "masmide").is_file()
        assert outcome.report.missing == ["assembler"]
        assert not outcome.report.all_satisfied
        manual = [w for w in outcome.warnings if w.capability == "assembler"]
        assert "manual — unresolved" in manual[0].message
        assert host.ran("pacman", "-S", "--noconfirm", "--needed")

    def test_bundled_assembler_satisfies(self, settings, make_host, root_broker, release_dir):
        host = make_host()
        outcome = _install(
            InstallRequest(source_dir=release_dir), settings, host, root_broker(host), PROFILES["arch"],
        )
        assert outcome.plan.unresolved == ()
        assert (settings.bin_dir / "jwasm").is_file()
        assert outcome.report.all_satisfied

    def test_opt_in_fallback_builds_assembler(self, settings, make_host, root_broker, tmp_path):
        release = build_release_dir(tmp_path / "dist", bundled_jwasm=False)
        host = make_host()
        outcome = _install(
            InstallRequest(source_dir=release, allow_source_fallback=True),
            settings, host, root_broker(host), PROFILES["arch"],
        )
        assert host.ran("git", "clone")
        assert outcome.execution.source_built == ["jwasm"]
        assert outcome.report.all_satisfied


class TestUnknownFamily:
    """An unrecognized distribution completes with warnings."""

    def test_completes_with_warnings(self, settings, make_host, root_broker, release_dir):
        host = make_host()
        outcome = _install(
            InstallRequest(source_dir=release_dir), settings, host, root_broker(host), PROFILES["unknown"],
        )
        assert outcome.warnings[0].stage == "environment"
        assert [u.name for u in outcome.plan.unresolved] == [
            "source-toolchain", "pe-linker", "binary-runner",
        ]
        assert (settings.bin_dir / "masmide").is_file()
        assert outcome.report is not None

    def test_source_build_failure_not_fatal(self, settings, make_host, root_broker, tmp_path):
        release = build_release_dir(tmp_path / "dist", bundled_jwasm=False)
        host = make_host()
        outcome = _install(
            InstallRequest(source_dir=release), settings, host, root_broker(host), PROFILES["unknown"],
        )
        assert outcome.execution.failed == ["assembler"]
        assert any("'fetch'" in w.message for w in outcome.warnings)
        assert (settings.bin_dir / "masmide").is_file()


class TestCheckout:
    """Installing from a source checkout compiles the primary binary."""

    def test_cargo_build(self, settings, make_host, root_broker, tmp_path):
        checkout = tmp_path / "masmide"
        checkout.mkdir()
        (checkout / "Cargo.toml").write_text('[package]\nname = "masmide"\n')
        host = make_host(binaries=set(FULL_TOOLCHAIN) | {"cargo"})
        outcome = _install(
            InstallRequest(source_dir=checkout), settings, host, root_broker(host), PROFILES["fedora"],
        )
        assert outcome.mode == "checkout"
        assert host.ran("cargo", "build", "--release")
        assert (settings.bin_dir / "masmide").read_bytes() == b"\x7fELF masmide built with cargo"
        assert "rust-toolchain" in outcome.report.capabilities

    def test_missing_rust_is_fatal(self, settings, make_host, root_broker, tmp_path):
        checkout = tmp_path / "masmide"
        checkout.mkdir()
        (checkout / "Cargo.toml").write_text("")
        host = make_host(binaries=set(FULL_TOOLCHAIN), failing_packages=("cargo",))
        with pytest.raises(ProvisionError, match="rust-toolchain"):
            _install(
                InstallRequest(source_dir=checkout), settings, host, root_broker(host), PROFILES["debian"],
            )
        assert not settings.bin_dir.exists()


class TestAborts:
    """Fatal conditions and cancellation."""

    def test_decline_changes_nothing(self, settings, make_host, root_broker, release_dir):
        host = make_host()
        outcome = _install(
            InstallRequest(source_dir=release_dir), settings, host, root_broker(host),
            PROFILES["debian"], PresetConfirmer({"proceed-install": False}),
        )
        assert outcome.cancelled
        assert host.commands == []
        assert not settings.bin_dir.exists()
        assert not settings.config_file.exists()

    def test_directory_without_artifact(self, settings, make_host, root_broker, tmp_path):
        host = make_host()
        with pytest.raises(ArtifactError, match="neither"):
            _install(
                InstallRequest(source_dir=tmp_path), settings, host, root_broker(host), PROFILES["debian"],
            )

    def test_privilege_failure_stops_before_changes(self, settings, make_host, release_dir):
        host = make_host(sudo_ok=False)
        broker = PrivilegeBroker(runner=host.run, geteuid=lambda: 1000)
        with pytest.raises(PrivilegeError):
            _install(InstallRequest(source_dir=release_dir), settings, host, broker, PROFILES["debian"])
        assert host.commands == [["sudo", "-v"]]
        assert not settings.bin_dir.exists()

    def test_privilege_released_on_failure(self, settings, make_host, tmp_path):
        checkout = tmp_path / "masmide"
        checkout.mkdir()
        (checkout / "Cargo.toml").write_text("")
        host = make_host(binaries=set(FULL_TOOLCHAIN) | {"cargo"}, build_ok=False)
        broker = PrivilegeBroker(renewal_interval=0.02, runner=host.run, geteuid=lambda: 1000)
        with pytest.raises(SourceBuildError):
            _install(InstallRequest(source_dir=checkout), settings, host, broker, PROFILES["debian"])
        assert broker.token.released
        assert not broker.token.heartbeat_alive
