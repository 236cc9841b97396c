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

from .models import Tm2bdConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: Tm2bdConfig | None = None

PROJECT_CONFIG_NAME = ".tm2bd.json"

# Env vars that override string settings as-is
_ENV_STRING_OVERRIDES = {
    "TM2BD_TASKS_FILE": "tasks_file",
    "TM2BD_PROJECT_DIR": "project_dir",
    "TM2BD_MAP_FILE": "map_file",
    "TM2BD_TAG": "tag",
    "TM2BD_BD_COMMAND": "bd_command",
}


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
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/tm2bd/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "tm2bd" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .tm2bd.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested
    dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}})
        {'a': 1, 'b': {'x': 10, 'y': 20}}
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
            logger.warning("Ignoring config at %s: expected a JSON object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        TM2BD_TASKS_FILE - overrides tasks_file
        TM2BD_PROJECT_DIR - overrides project_dir
        TM2BD_MAP_FILE - overrides map_file
        TM2BD_TAG - overrides tag
        TM2BD_BD_COMMAND - overrides bd_command
        TM2BD_COMMAND_TIMEOUT - overrides command_timeout (seconds)
        TM2BD_CHECKPOINT - overrides checkpoint

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    for env_name, key in _ENV_STRING_OVERRIDES.items():
        if value := os.environ.get(env_name):
            result[key] = value

    if timeout_str := os.environ.get("TM2BD_COMMAND_TIMEOUT"):
        try:
            timeout = float(timeout_str)
            if timeout <= 0:
                logger.warning(
                    "TM2BD_COMMAND_TIMEOUT must be > 0, got %s, ignoring", timeout_str
                )
            else:
                result["command_timeout"] = timeout
        except ValueError:
            logger.warning("Invalid TM2BD_COMMAND_TIMEOUT value '%s', ignoring", timeout_str)

    if checkpoint_str := os.environ.get("TM2BD_CHECKPOINT"):
        result["checkpoint"] = checkpoint_str.lower() not in ("false", "0", "no")

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return Tm2bdConfig().model_dump()


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> Tm2bdConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TM2BD_*)
        2. Project config (.tm2bd.json)
        3. User config (~/.config/tm2bd/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Directory to load .tm2bd.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated Tm2bdConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = Tm2bdConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
