"""
Settings loader — reads provision.yml into InstallerSettings.

The file is optional. Without one every setting takes its default;
with one, only the keys it names are overridden. YAML is read with
``safe_load`` and validated against the Pydantic model.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.errors import ConfigError
from provisioner.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

# Default settings filename (looked up in the user config dir)
SETTINGS_FILE = "provision.yml"
SETTINGS_ENV_VAR = "MASMIDE_PROVISION_CONFIG"


def default_settings_path() -> Path:
    """Where provision.yml lives when nobody says otherwise."""
    return InstallerSettings().user_config_dir / SETTINGS_FILE


def load_settings(path: Path | None = None) -> InstallerSettings:
    """Load and validate installer settings.

    Args:
        path: Explicit path to a settings file. If None, uses
            ``$MASMIDE_PROVISION_CONFIG``, then the default location.

    Returns:
        Validated InstallerSettings.

    Raises:
        ConfigError: If an explicitly named file is missing, or any
            file is unreadable, not YAML, or fails validation.
    """
    explicit = path is not None
    if path is None:
        env_path = os.environ.get(SETTINGS_ENV_VAR)
        if env_path:
            path = Path(env_path).expanduser()
            explicit = True
        else:
            path = default_settings_path()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Settings file not found: {path}")
        logger.debug("No settings file at %s — using defaults", path)
        return InstallerSettings()

    logger.debug("Loading installer settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return InstallerSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "provision" key or be flat
    settings_data = data.get("provision", data)

    try:
        settings = InstallerSettings.model_validate(settings_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer settings: {e}") from e

    logger.info("Loaded installer settings from %s", path)
    return settings
