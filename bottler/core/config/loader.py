"""
Configuration loader — builds Settings from defaults, YAML and env.

Precedence, lowest to highest:

    built-in defaults  <  config.yml  <  BOTTLER_* environment variables

``HOMEBREW_CACHE`` counts as an environment variable for ``cache_root``
and loses only to ``BOTTLER_CACHE``.

The YAML file is optional.  It is taken from the explicit ``path``
argument, else ``$BOTTLER_CONFIG``, else ``~/.config/bottler/config.yml``
when that file exists.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from bottler.core.errors import BottlerError
from bottler.core.models.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(".config") / "bottler" / "config.yml"

# env var → settings field
_ENV_FIELDS: dict[str, str] = {
    "BOTTLER_CACHE": "cache_root",
    "BOTTLER_DATA_DIR": "data_dir",
    "BOTTLER_PLATFORM": "platform",
    "BOTTLER_MAX_FETCHES": "max_concurrent_fetches",
    "BOTTLER_FETCH_RETRIES": "fetch_retries",
    "BOTTLER_FORMULAE_URL": "formulae_url",
    "BOTTLER_AUTH_TOKEN": "auth_token",
    "BOTTLER_HTTP_TIMEOUT": "http_timeout",
}


class ConfigError(BottlerError):
    """Raised when configuration is unreadable or invalid."""


def default_settings_data(env: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Platform-dependent defaults for cache and data directories."""
    env = os.environ if env is None else env
    home = Path(env.get("HOME") or Path.home())

    if sys.platform == "darwin":
        cache_root = home / "Library" / "Caches" / "Homebrew"
        prefix = Path(env.get("HOMEBREW_PREFIX", "/opt/homebrew"))
        data_dir = prefix / ".bottler"
    else:
        cache_root = home / ".cache" / "bottler"
        data_dir = home / ".local" / "share" / "bottler"

    return {"cache_root": cache_root, "data_dir": data_dir}


def find_config_file(env: Mapping[str, str] | None = None) -> Path | None:
    """Locate the optional YAML config file."""
    env = os.environ if env is None else env
    explicit = env.get("BOTTLER_CONFIG")
    if explicit:
        return Path(explicit).expanduser()
    candidate = Path(env.get("HOME") or Path.home()) / DEFAULT_CONFIG_FILE
    return candidate if candidate.is_file() else None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config mapping.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything to sit under a top-level "bottler" key
    if isinstance(data.get("bottler"), dict):
        data = data["bottler"]
    return dict(data)


def env_overrides(env: Mapping[str, str]) -> dict[str, str]:
    """Pick the settings fields that are set in *env*.

    ``HOMEBREW_CACHE`` stands in for ``BOTTLER_CACHE`` when only the
    former is set, so a Homebrew download cache is shared.
    """
    overrides: dict[str, str] = {}
    for var, field_name in _ENV_FIELDS.items():
        value = env.get(var)
        if value:
            overrides[field_name] = value
    if "cache_root" not in overrides and env.get("HOMEBREW_CACHE"):
        overrides["cache_root"] = env["HOMEBREW_CACHE"]
    return overrides


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit YAML config file.  If None, searches as described
            in the module docstring.
        env: Environment mapping (default: ``os.environ``).

    Returns:
        Validated, frozen Settings.

    Raises:
        ConfigError: If any source is invalid.
    """
    env = os.environ if env is None else env

    data = default_settings_data(env)

    config_file = path if path is not None else find_config_file(env)
    if config_file is not None:
        data.update(read_config_file(config_file))

    data.update(env_overrides(env))

    for key in ("cache_root", "data_dir"):
        if key in data and data[key] is not None:
            data[key] = Path(str(data[key])).expanduser()

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        source = f" (from {config_file})" if config_file else ""
        raise ConfigError(f"Invalid settings{source}: {e}") from e

    logger.debug(
        "Settings: cache=%s data=%s jobs=%d retries=%d",
        settings.cache_root,
        settings.data_dir,
        settings.max_concurrent_fetches,
        settings.fetch_retries,
    )
    return settings
