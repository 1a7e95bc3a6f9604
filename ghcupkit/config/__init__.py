"""
Configuration management for ghcupkit.

Loads user settings from YAML and bundles them with the directory layout.
"""

from ghcupkit.config.settings import (
    AppState,
    CONFIG_FILE_NAME,
    Downloader,
    KeepDirs,
    Settings,
    load_app_state,
    load_settings,
    parse_settings,
)

__all__ = [
    "AppState",
    "CONFIG_FILE_NAME",
    "Downloader",
    "KeepDirs",
    "Settings",
    "load_app_state",
    "load_settings",
    "parse_settings",
]
