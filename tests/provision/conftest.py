"""
Shared fixtures for provisioning tests.
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from provisioner.core.models import InstallerSettings
from provisioner.core.services.provision.execution.privilege import PrivilegeBroker
from tests.provision.simulated_hosts import FakeHost, build_release_dir


@pytest.fixture
def settings(tmp_path: Path) -> InstallerSettings:
    """Installer settings rooted in a temp dir."""
    return InstallerSettings(
        bin_dir=tmp_path / "usr" / "local" / "bin",
        lib_dir=tmp_path / "usr" / "local" / "lib" / "irvine",
        inc_dir=tmp_path / "usr" / "local" / "include" / "irvine",
        user_config_dir=tmp_path / "home" / ".config" / "masmide",
        state_dir=tmp_path / "home" / ".local" / "state" / "masmide",
        privilege_renewal_interval=0.05,
    )


@pytest.fixture
def make_host(settings: InstallerSettings):
    """Factory for a FakeHost whose PATH includes the install bin dir."""

    def _make(**kwargs) -> FakeHost:
        kwargs.setdefault("bin_dir", settings.bin_dir)
        return FakeHost(**kwargs)

    return _make


@pytest.fixture
def root_broker():
    """Factory for a broker that believes it runs as root."""

    def _make(host: FakeHost) -> PrivilegeBroker:
        return PrivilegeBroker(renewal_interval=0.05, runner=host.run, geteuid=lambda: 0)

    return _make


@pytest.fixture
def release_dir(tmp_path: Path) -> Path:
    """A complete unpacked release with bundled JWasm."""
    return build_release_dir(tmp_path / "dist")


@pytest.fixture
def fake_github(monkeypatch):
    """Serve release metadata and archives from memory.

    Returns a dict: set ``tag`` for /releases/latest and map archive
    URLs to local tarball paths in ``archives``.
    """
    import json
    import urllib.error

    from provisioner.core.services.provision.execution import release

    state: dict = {"tag": "v0.2.0", "archives": {}, "requests": []}

    class _Resp(io.BytesIO):
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            self.close()
            return False

    def fake_urlopen(req, timeout=None):
        url = req.full_url
        state["requests"].append(url)
        if url.endswith("/releases/latest"):
            if state["tag"] is None:
                raise urllib.error.URLError("network unreachable")
            return _Resp(json.dumps({"tag_name": state["tag"]}).encode())
        if url in state["archives"]:
            return _Resp(Path(state["archives"][url]).read_bytes())
        raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)

    monkeypatch.setattr(release.urllib.request, "urlopen", fake_urlopen)
    return state
