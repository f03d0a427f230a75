"""
Tests for the capability probe and the subprocess runner beneath it.
"""

from __future__ import annotations

import sys

from provisioner.core.models import Capability, Probe
from provisioner.core.services.provision.data.capabilities import (
    PE_LINKER,
    SOURCE_TOOLCHAIN,
    assembler_capability,
)
from provisioner.core.services.provision.detection.capability_probe import (
    probe_all,
    probe_capability,
)
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)
from tests.provision.simulated_hosts import FULL_TOOLCHAIN, FakeHost


class TestProbeCapability:
    """Tests for a single capability probe."""

    def test_present_reports_version_line(self):
        host = FakeHost(binaries={"wine"})
        cap = Capability(name="binary-runner", probe=Probe(candidates=("wine",)))
        status = probe_capability(cap, runner=host.run, which=host.which)
        assert status.present
        assert status.detail == "wine 1.0.0"
        assert status.path == "/usr/bin/wine"

    def test_absent(self):
        host = FakeHost()
        status = probe_capability(PE_LINKER, runner=host.run, which=host.which)
        assert not status.present
        assert "i686-w64-mingw32-ld" in status.detail
        assert host.commands == []

    def test_first_candidate_wins(self):
        host = FakeHost(binaries={"i686-w64-mingw32-ld", "x86_64-w64-mingw32-ld"})
        status = probe_capability(PE_LINKER, runner=host.run, which=host.which)
        assert status.path == "/usr/bin/i686-w64-mingw32-ld"
        assert len(host.commands) == 1

    def test_second_candidate_used(self):
        host = FakeHost(binaries={"x86_64-w64-mingw32-ld"})
        status = probe_capability(PE_LINKER, runner=host.run, which=host.which)
        assert status.present
        assert status.path == "/usr/bin/x86_64-w64-mingw32-ld"

    def test_nonzero_exit_is_present(self):
        """JWasm exits 1 on -? but is usable."""
        host = FakeHost(binaries={"jwasm"})
        status = probe_capability(assembler_capability(), runner=host.run, which=host.which)
        assert status.present
        assert status.detail.startswith("JWasm v2.17")
        assert host.commands == [["/usr/bin/jwasm", "-?"]]

    def test_hanging_version_query_is_absent(self):
        host = FakeHost(binaries={"wine"}, hanging=("wine",))
        cap = Capability(name="binary-runner", probe=Probe(candidates=("wine",)))
        status = probe_capability(cap, runner=host.run, which=host.which, timeout=3)
        assert not status.present
        assert "no response within 3s" in status.detail

    def test_hanging_candidate_falls_through(self):
        host = FakeHost(
            binaries={"i686-w64-mingw32-ld", "x86_64-w64-mingw32-ld"},
            hanging=("i686-w64-mingw32-ld",),
        )
        status = probe_capability(PE_LINKER, runner=host.run, which=host.which, timeout=0.1)
        assert status.present
        assert status.path == "/usr/bin/x86_64-w64-mingw32-ld"
        assert len(host.commands) == 2

    def test_unexecutable_candidate_falls_through(self):
        host = FakeHost(binaries={"x86_64-w64-mingw32-ld"})
        paths = {
            "i686-w64-mingw32-ld": "/nonexistent/i686-w64-mingw32-ld",
            "x86_64-w64-mingw32-ld": "/usr/bin/x86_64-w64-mingw32-ld",
        }
        status = probe_capability(PE_LINKER, runner=host.run, which=paths.get)
        assert status.present
        assert status.path == "/usr/bin/x86_64-w64-mingw32-ld"

    def test_every_candidate_hanging_is_absent(self):
        linkers = ("i686-w64-mingw32-ld", "x86_64-w64-mingw32-ld")
        host = FakeHost(binaries=set(linkers), hanging=linkers)
        status = probe_capability(PE_LINKER, runner=host.run, which=host.which, timeout=2)
        assert not status.present
        assert status.detail.count("no response within 2s") == 2

    def test_unexecutable_is_absent(self):
        cap = Capability(name="ghost", probe=Probe(candidates=("ghost",)))
        status = probe_capability(
            cap,
            runner=FakeHost().run,
            which=lambda name: "/nonexistent/ghost",
        )
        assert not status.present
        assert "Cannot execute" in status.detail

    def test_require_all(self):
        host = FakeHost(binaries={"git", "make"})
        status = probe_capability(SOURCE_TOOLCHAIN, runner=host.run, which=host.which)
        assert not status.present
        assert status.detail == "missing: gcc"
        assert host.commands == []

    def test_require_all_present(self):
        host = FakeHost(binaries={"git", "make", "gcc"})
        status = probe_capability(SOURCE_TOOLCHAIN, runner=host.run, which=host.which)
        assert status.present

    def test_probe_is_read_only(self):
        host = FakeHost(binaries=set(FULL_TOOLCHAIN))
        probe_all([SOURCE_TOOLCHAIN, PE_LINKER], runner=host.run, which=host.which)
        assert host.installed_packages == []
        assert not any(c.get("needs_sudo") for c in host.calls)


class TestProbeAll:
    """Tests for probing the whole table."""

    def test_keys_in_declaration_order(self):
        host = FakeHost(binaries=set(FULL_TOOLCHAIN))
        caps = [SOURCE_TOOLCHAIN, assembler_capability(), PE_LINKER]
        statuses = probe_all(caps, runner=host.run, which=host.which)
        assert list(statuses) == ["source-toolchain", "assembler", "pe-linker"]
        assert all(s.present for s in statuses.values())


class TestRunCommand:
    """Tests for the real subprocess runner."""

    def test_success(self):
        result = run_command([sys.executable, "-c", "print('hi')"])
        assert result["ok"]
        assert result["returncode"] == 0
        assert result["stdout"].strip() == "hi"
        assert result["timed_out"] is False

    def test_failure_never_raises(self):
        result = run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert not result["ok"]
        assert result["returncode"] == 3
        assert "exit 3" in result["error"]

    def test_missing_binary(self):
        result = run_command(["/nonexistent/binary-xyz"])
        assert not result["ok"]
        assert result["returncode"] is None
        assert "Cannot execute" in result["error"]

    def test_timeout(self):
        result = run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        assert not result["ok"]
        assert result["timed_out"] is True
        assert result["returncode"] is None

    def test_cwd_and_env(self, tmp_path):
        result = run_command(
            [sys.executable, "-c", "import os; print(os.getcwd()); print(os.environ['MASMIDE_X'])"],
            cwd=str(tmp_path),
            env_overrides={"MASMIDE_X": "42"},
        )
        lines = result["stdout"].splitlines()
        assert lines[1] == "42"

    def test_needs_sudo_without_token(self, monkeypatch):
        import provisioner.core.services.provision.execution.subprocess_runner as runner_mod

        monkeypatch.setattr(runner_mod.os, "geteuid", lambda: 1000)
        result = run_command(["true"], needs_sudo=True)
        assert not result["ok"]
        assert "elevated privilege" in result["error"]

    def test_command_output(self):
        assert command_output({"stdout": "a\n", "stderr": "b\n"}) == "a\nb"
        assert command_output({"stdout": "", "stderr": "", "error": "boom"}) == "boom"
