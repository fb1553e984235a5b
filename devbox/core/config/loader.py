"""
Configuration loader — reads devbox.yml into a ProvisionConfig.

Lookup order:
    --config flag  >  DEVBOX_CONFIG env var  >  ~/.config/devbox/devbox.yml

No file at all is fine: every setting has a default. An explicitly
named file that is missing or invalid is an error.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from devbox.core.errors import ConfigError
from devbox.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "devbox.yml"
CONFIG_ENV = "DEVBOX_CONFIG"
GIT_EMAIL_ENV = "DEVBOX_GIT_EMAIL"
GIT_NAME_ENV = "DEVBOX_GIT_NAME"


def default_config_path() -> Path:
    return Path.home() / ".config" / "devbox" / CONFIG_FILE


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Resolve which config file to load, or None to use defaults.

    Raises:
        ConfigError: if an explicitly requested file does not exist.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    from_env = os.environ.get(CONFIG_ENV)
    if from_env:
        path = Path(from_env).expanduser()
        if not path.is_file():
            raise ConfigError(f"{CONFIG_ENV} points to a missing file: {path}")
        return path

    candidate = default_config_path()
    return candidate if candidate.is_file() else None


def load_config(path: Path | None = None) -> ProvisionConfig:
    """Load and validate devbox configuration.

    Args:
        path: Explicit path to devbox.yml. If None, uses the lookup order.

    Returns:
        Validated ProvisionConfig, with git identity env overrides applied.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    resolved = find_config_file(path)

    if resolved is None:
        logger.info("No %s found, using defaults", CONFIG_FILE)
        data: dict = {}
    else:
        logger.debug("Loading config from %s", resolved)
        try:
            raw = resolved.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {resolved}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {resolved}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {resolved}, got {type(loaded).__name__}")
        data = (loaded["devbox"] or {}) if "devbox" in loaded else loaded

    try:
        config = ProvisionConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid devbox configuration: {e}") from e

    return apply_env_overrides(config)


def apply_env_overrides(config: ProvisionConfig) -> ProvisionConfig:
    """Fill git identity from DEVBOX_GIT_EMAIL / DEVBOX_GIT_NAME when set."""
    email = os.environ.get(GIT_EMAIL_ENV)
    name = os.environ.get(GIT_NAME_ENV)
    if not email and not name:
        return config
    git = config.git.model_copy(
        update={
            "email": email or config.git.email,
            "name": name or config.git.name,
        }
    )
    return config.model_copy(update={"git": git})
