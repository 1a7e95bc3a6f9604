"""Fake installation layouts for testing.

Compilers, cabal and HLS binaries are created as small shell scripts in a
temporary ``.ghcup`` tree, laid out the way real installations are.
"""

import os
import stat
from pathlib import Path
from typing import Iterable, Optional

import pytest

from ghcupkit.config.settings import AppState, Settings
from ghcupkit.core.directory import Dirs, ensure_directory_structure

# Binaries of a compiler installed with the hadrian build system
HADRIAN_GHC_BINARIES = ["ghc", "ghc-pkg", "ghci", "haddock", "hpc", "hsc2hs", "runghc"]


def make_executable(path: Path, content: str = "#!/bin/sh\nexit 0\n") -> Path:
    """Write a small executable script."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def install_fake_ghc(
    dirs: Dirs,
    name: str,
    binaries: Optional[Iterable[str]] = None,
) -> Path:
    """
    Create ``<base>/ghc/<name>/bin/`` holding the given binaries.

    Example:
        install_fake_ghc(dirs, "8.10.4", ["ghc", "ghc-8.10.4", "ghci", "ghci-8.10.4"])
    """
    ghcdir = dirs.base_dir / "ghc" / name
    bindir = ghcdir / "bin"
    bindir.mkdir(parents=True, exist_ok=True)
    for binary in binaries if binaries is not None else HADRIAN_GHC_BINARIES:
        make_executable(bindir / binary)
    return ghcdir


def legacy_ghc_binaries(version: str, prefix: str = "") -> list:
    """Binary names of a compiler built with the legacy make system."""
    names = []
    for tool in ("ghc", "ghc-pkg", "ghci", "haddock", "runghc"):
        names.append(f"{prefix}{tool}")
        names.append(f"{prefix}{tool}-{version}")
    names.extend([f"{prefix}hpc", f"{prefix}hsc2hs"])
    return names


def install_fake_bin_tool(dirs: Dirs, name: str) -> Path:
    """Create a versioned binary in the shared bin directory, e.g. 'cabal-3.4.0.0'."""
    return make_executable(dirs.bin_dir / name)


@pytest.fixture
def dirs(tmp_path) -> Dirs:
    """Directory layout rooted in a temporary '.ghcup'."""
    layout = Dirs.from_base(tmp_path / ".ghcup")
    ensure_directory_structure(layout)
    return layout


@pytest.fixture
def app_state(dirs) -> AppState:
    """AppState with default settings over the temporary layout."""
    return AppState(settings=Settings(), dirs=dirs)


@pytest.fixture
def hadrian_ghc(dirs) -> Path:
    """A hadrian-built 9.2.1 compiler."""
    return install_fake_ghc(dirs, "9.2.1")


@pytest.fixture
def legacy_ghc(dirs) -> Path:
    """A make-built 8.10.4 compiler shipping versioned binaries."""
    return install_fake_ghc(dirs, "8.10.4", legacy_ghc_binaries("8.10.4"))


@pytest.fixture
def cross_ghc(dirs) -> Path:
    """A make-built 8.10.4 cross compiler for armv7."""
    target = "armv7-unknown-linux-gnueabihf"
    return install_fake_ghc(
        dirs,
        f"{target}-8.10.4",
        legacy_ghc_binaries("8.10.4", prefix=f"{target}-"),
    )


@pytest.fixture
def hls_installation(dirs):
    """HLS 1.2.0 with servers for two compiler versions."""
    for name in (
        "haskell-language-server-wrapper-1.2.0",
        "haskell-language-server-8.10.4~1.2.0",
        "haskell-language-server-9.0.1~1.2.0",
    ):
        install_fake_bin_tool(dirs, name)
    return dirs.bin_dir


def link_target(link: Path) -> str:
    """The raw target of a symlink."""
    return os.readlink(link)
