"""Configuration package."""

from devrecap.config.settings import (
    Settings,
    default_config_path,
    load_settings,
    settings,
    write_default_config,
)

__all__ = [
    "Settings",
    "default_config_path",
    "load_settings",
    "settings",
    "write_default_config",
]
