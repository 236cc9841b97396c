"""
Configuration models and loading.

This module provides the Pydantic model for tm2bd configuration with
multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import Tm2bdConfig

__all__ = [
    "Tm2bdConfig",
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]
