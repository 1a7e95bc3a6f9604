"""
Directory layout management for ghcupkit.

This module resolves the on-disk layout shared with existing installations
and creates it on demand.

Directory Structure (~/.ghcup/ unless GHCUP_INSTALL_BASE_PREFIX is set):
    - bin/                    : Active symlinks and versioned tool binaries
    - ghc/<target-version>/   : One installation directory per compiler version
        - bin/                : The compiler's own binaries
        - .ghcup_src_built    : Marker, present if built from source
    - cache/                  : Downloaded archives (when caching is enabled)
    - logs/                   : Build and subprocess logs
    - lock/                   : Lock files for concurrent access control
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .exceptions import ConfigError

BASE_PREFIX_ENV = "GHCUP_INSTALL_BASE_PREFIX"

# This file, when residing in ~/.ghcup/ghc/<ver>/, signals that this GHC
# was built from source. It contains the build config.
GHC_SRC_BUILT_FILE = ".ghcup_src_built"


@dataclass(frozen=True)
class Dirs:
    """Resolved locations of the installation layout."""

    base_dir: Path
    bin_dir: Path
    cache_dir: Path
    logs_dir: Path
    conf_dir: Path

    @property
    def lock_dir(self) -> Path:
        return self.base_dir / "lock"

    @classmethod
    def from_base(cls, base_dir: Path) -> "Dirs":
        """
        Build the layout rooted at base_dir.

        Example:
            >>> Dirs.from_base(Path('/home/user/.ghcup')).bin_dir
            PosixPath('/home/user/.ghcup/bin')
        """
        base_dir = Path(base_dir)
        return cls(
            base_dir=base_dir,
            bin_dir=base_dir / "bin",
            cache_dir=base_dir / "cache",
            logs_dir=base_dir / "logs",
            conf_dir=base_dir,
        )


def get_base_dir(environ: Optional[Dict[str, str]] = None) -> Path:
    """
    Get the installation base directory.

    Honors GHCUP_INSTALL_BASE_PREFIX, which names the directory that
    contains '.ghcup' (the home directory by default).

    Raises:
        ConfigError: If the prefix is set but not absolute
    """
    environ = os.environ if environ is None else environ
    prefix = environ.get(BASE_PREFIX_ENV)

    if prefix:
        prefix_path = Path(prefix)
        if not prefix_path.is_absolute():
            raise ConfigError(
                f"{BASE_PREFIX_ENV} must be an absolute path, got: {prefix}"
            )
        return prefix_path / ".ghcup"

    return Path.home() / ".ghcup"


def get_dirs(environ: Optional[Dict[str, str]] = None) -> Dirs:
    """Resolve the full directory layout from the environment."""
    return Dirs.from_base(get_base_dir(environ))


def ensure_directory_structure(dirs: Dirs) -> None:
    """Create the shared directories of the layout (idempotent)."""
    for path in (dirs.base_dir, dirs.bin_dir, dirs.cache_dir, dirs.logs_dir):
        path.mkdir(parents=True, exist_ok=True)


def ghc_base_dir(dirs: Dirs) -> Path:
    """Directory holding all compiler installations."""
    return dirs.base_dir / "ghc"


def ghc_dir(dirs: Dirs, target_version) -> Path:
    """Installation directory of a compiler version, e.g. ~/.ghcup/ghc/8.10.4."""
    return ghc_base_dir(dirs) / str(target_version)
