"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_user_dirs(tmp_path_factory, monkeypatch) -> Path:
    """Point XDG dirs at a temp home so no test touches the real one."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home / ".local" / "state"))
    for var in ("MASMIDE_PROVISION_CONFIG", "MASMIDE_LOG_LEVEL", "MASMIDE_LOG_FILE", "MASMIDE_LOG_FILE_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return home
