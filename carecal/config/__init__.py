"""Configuration module for CareCal"""

from carecal.config.settings import (
    DEFAULT_CATEGORY_COLORS,
    Settings,
    clear_settings_cache,
    get_settings,
    override_settings,
)

__all__ = [
    "DEFAULT_CATEGORY_COLORS",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "override_settings",
]
