"""YAML settings parser for ghcupkit.

This module loads the user settings (``config.yaml`` in the base directory)
and bundles them with the directory layout into the AppState value that is
handed to every component.
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..core.directory import Dirs, get_dirs
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"


class KeepDirs(enum.Enum):
    """Retention policy for build directories."""

    ALWAYS = "always"  # never delete the build directory
    NEVER = "never"  # delete it after success and after failure
    ERRORS = "errors"  # delete it after failure only


class Downloader(enum.Enum):
    """External program used by the download layer."""

    CURL = "curl"
    WGET = "wget"


@dataclass
class Settings:
    """User settings consumed by the engine and the download layer."""

    cache: bool = False
    no_verify: bool = False
    keep_dirs: KeepDirs = KeepDirs.ERRORS
    downloader: Downloader = Downloader.CURL
    verbose: bool = False


@dataclass
class AppState:
    """Settings plus directory layout, passed explicitly to each component."""

    settings: Settings = field(default_factory=Settings)
    dirs: Dirs = field(default_factory=get_dirs)


def _parse_bool(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean, got: {value!r}")
    return value


def _parse_enum(data: Dict[str, Any], key: str, enum_cls, default):
    value = data.get(key)
    if value is None:
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid '{key}': {value!r} (expected one of: {allowed})")


def parse_settings(data: Optional[Dict[str, Any]]) -> Settings:
    """
    Build Settings from an already parsed mapping.

    Raises:
        ConfigError: If a value has the wrong type or is not allowed
    """
    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError("Settings must be a mapping")

    unknown = set(data) - {"cache", "no-verify", "keep-dirs", "downloader", "verbose"}
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")

    return Settings(
        cache=_parse_bool(data, "cache", False),
        no_verify=_parse_bool(data, "no-verify", False),
        keep_dirs=_parse_enum(data, "keep-dirs", KeepDirs, KeepDirs.ERRORS),
        downloader=_parse_enum(data, "downloader", Downloader, Downloader.CURL),
        verbose=_parse_bool(data, "verbose", False),
    )


def load_settings(config_path: Path) -> Settings:
    """
    Load settings from a YAML file.

    A missing or empty file yields the defaults.

    Args:
        config_path: Path to config.yaml

    Returns:
        Parsed and validated settings

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values
    """
    if not config_path.exists():
        logger.debug(f"No settings file at {config_path}, using defaults")
        return Settings()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e

    return parse_settings(data)


def load_app_state(dirs: Optional[Dirs] = None) -> AppState:
    """Resolve the directory layout and load settings from its config file."""
    dirs = dirs or get_dirs()
    settings = load_settings(dirs.conf_dir / CONFIG_FILE_NAME)
    return AppState(settings=settings, dirs=dirs)
