"""
Core functionality for ghcupkit.

This package contains the foundational modules that other components depend on.
"""

from .directory import (
    Dirs,
    GHC_SRC_BUILT_FILE,
    get_base_dir,
    get_dirs,
    ensure_directory_structure,
    ghc_base_dir,
    ghc_dir,
)

from .exceptions import (
    GhcupError,
    ConfigError,
    ParseError,
    ArchiveError,
    UnknownArchive,
    ExtractError,
    TarDirDoesNotExist,
    NotInstalled,
    UnexpectedListLength,
    ProcessError,
    PatchFailed,
    BuildFailed,
)

from .locking import LockManager, LockTimeout

from .platform import (
    EXE_EXT,
    PlatformInfo,
    detect_platform,
)

__all__ = [
    "Dirs",
    "GHC_SRC_BUILT_FILE",
    "get_base_dir",
    "get_dirs",
    "ensure_directory_structure",
    "ghc_base_dir",
    "ghc_dir",
    "GhcupError",
    "ConfigError",
    "ParseError",
    "ArchiveError",
    "UnknownArchive",
    "ExtractError",
    "TarDirDoesNotExist",
    "NotInstalled",
    "UnexpectedListLength",
    "ProcessError",
    "PatchFailed",
    "BuildFailed",
    "LockManager",
    "LockTimeout",
    "EXE_EXT",
    "PlatformInfo",
    "detect_platform",
]
