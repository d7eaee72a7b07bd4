"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import ExtIdConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: ExtIdConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Get path to ~/.config/extid/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "extid" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Get path to .extid.json in the project directory."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".extid.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested
    dicts are merged, not replaced.

    Example:
        >>> deep_merge({"widths": {"office_width": 2}}, {"widths": {"client_width": 5}})
        {'widths': {'office_width': 2, 'client_width': 5}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring config at %s: top level is not an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _env_flag(value: str) -> bool:
    return value.lower() not in ("false", "0", "no", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        EXTID_ROOT_OFFICE_ID - overrides root_office_id
        EXTID_LOCK_TIMEOUT - overrides lock_timeout_seconds
        EXTID_STRICT_WIDTH - overrides strict_width
        EXTID_DB_PATH - overrides db_path

    Invalid values are logged and ignored.
    """
    result = config_dict.copy()

    if root_str := os.environ.get("EXTID_ROOT_OFFICE_ID"):
        try:
            root_id = int(root_str)
            if root_id < 1:
                logger.warning("EXTID_ROOT_OFFICE_ID must be >= 1, got %d, ignoring", root_id)
            else:
                result["root_office_id"] = root_id
        except ValueError:
            logger.warning("Invalid EXTID_ROOT_OFFICE_ID value '%s', ignoring", root_str)

    if timeout_str := os.environ.get("EXTID_LOCK_TIMEOUT"):
        try:
            timeout = float(timeout_str)
            if timeout <= 0:
                logger.warning("EXTID_LOCK_TIMEOUT must be > 0, got %s, ignoring", timeout_str)
            else:
                result["lock_timeout_seconds"] = timeout
        except ValueError:
            logger.warning("Invalid EXTID_LOCK_TIMEOUT value '%s', ignoring", timeout_str)

    if strict_str := os.environ.get("EXTID_STRICT_WIDTH"):
        result["strict_width"] = _env_flag(strict_str)

    if db_path := os.environ.get("EXTID_DB_PATH"):
        result["db_path"] = db_path

    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> ExtIdConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (EXTID_*)
        2. Project config (.extid.json)
        3. User config (~/.config/extid/config.json)
        4. Model defaults

    Args:
        project_dir: Project directory to load .extid.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated ExtIdConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = ExtIdConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """Clear the cached configuration."""
    global _config_cache
    _config_cache = None
