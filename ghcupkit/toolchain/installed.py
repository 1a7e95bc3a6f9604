"""
Introspection of what is installed.

Compilers live in their own directories (``<base>/ghc/<target-version>/``);
the other tools live as versioned binaries (``cabal-3.4.0.0``) in the shared
bin directory. Entries that exist on disk but cannot be parsed are reported
rather than dropped, so they can still be seen and cleaned up by hand.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Pattern, Union

from ghcupkit.config.settings import AppState
from ghcupkit.core.directory import GHC_SRC_BUILT_FILE, ghc_base_dir, ghc_dir
from ghcupkit.core.exceptions import NotInstalled, ParseError, ProcessError, UnexpectedListLength
from ghcupkit.core.platform import EXE_EXT, drop_exe_suffix
from ghcupkit.core.process import execute_out
from ghcupkit.toolchain.catalog import latest_installed_for_major_minor
from ghcupkit.toolchain.tools import Tool
from ghcupkit.toolchain.version import (
    TargetVersion,
    Version,
    parse_target_version,
    parse_version,
)

logger = logging.getLogger(__name__)

# Matches 'ghc', 'ghc-8.10.4' and cross variants such as
# 'armv7-unknown-linux-gnueabihf-ghc'. Over-matches ghc-pkg/ghci/haddock,
# which are filtered separately.
_GHC_BINARY_RE = re.compile(r"^([a-zA-Z0-9_-]*[a-zA-Z0-9_]-)?ghc.*$")
_GHC_BINARY_EXCLUDES = ("haddock", "ghc-pkg", "ghci")


@dataclass(frozen=True)
class InstalledEntry:
    """A file system entry for a tool, with its version if it parsed."""

    name: str
    version: Optional[TargetVersion] = None

    @property
    def parsed(self) -> bool:
        return self.version is not None


def parsed_versions(entries: List[InstalledEntry]) -> List[TargetVersion]:
    """The versions of the entries that parsed."""
    return [e.version for e in entries if e.version is not None]


def find_files(directory: Path, regex: Union[str, Pattern]) -> List[str]:
    """
    Sorted names of the entries of directory matching regex.

    An unreadable or missing directory yields an empty list.
    """
    if isinstance(regex, str):
        regex = re.compile(regex)
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    return sorted(name for name in names if regex.search(name))


class InstalledScanner:
    """Enumerates installed tool versions under one directory layout."""

    def __init__(self, app_state: AppState):
        """
        Initialize scanner.

        Args:
            app_state: Settings and directory layout
        """
        self.app_state = app_state
        self.dirs = app_state.dirs

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_installed(self, tool: Tool) -> List[InstalledEntry]:
        """
        List everything installed for a tool.

        Returns:
            One entry per file system entry; unparsable ones have no version
        """
        if tool is Tool.GHC:
            return self._list_ghcs()

        entries = self._list_bin_tool(tool)
        if tool is Tool.CABAL:
            legacy = self.legacy_cabal_version()
            if legacy is not None:
                tv = TargetVersion(legacy)
                if tv not in parsed_versions(entries):
                    entries.insert(0, InstalledEntry("cabal", tv))
        return entries

    def installed_versions(self, tool: Tool) -> List[TargetVersion]:
        """Parsed installed versions of a tool."""
        return parsed_versions(self.list_installed(tool))

    def _list_ghcs(self) -> List[InstalledEntry]:
        base = ghc_base_dir(self.dirs)
        try:
            names = sorted(os.listdir(base))
        except FileNotFoundError:
            return []

        entries = []
        for name in names:
            try:
                entries.append(InstalledEntry(name, parse_target_version(name)))
            except ParseError:
                logger.debug(f"Unparsable compiler directory: {base / name}")
                entries.append(InstalledEntry(name))
        return entries

    def _list_bin_tool(self, tool: Tool) -> List[InstalledEntry]:
        head = f"{tool.prefix}-"
        entries = []
        for name in find_files(self.dirs.bin_dir, rf"^{re.escape(head)}.*$"):
            try:
                version = parse_version(drop_exe_suffix(name)[len(head) :])
                entries.append(InstalledEntry(name, TargetVersion(version)))
            except ParseError:
                logger.debug(f"Unparsable {tool} binary: {name}")
                entries.append(InstalledEntry(name))
        return entries

    def legacy_cabal_version(self) -> Optional[Version]:
        """
        Version of a ``bin/cabal`` that is a regular file rather than a symlink.

        Old installations copied the binary instead of linking it; it is
        asked for its version directly.
        """
        cabal_bin = self.dirs.bin_dir / f"cabal{EXE_EXT}"
        if cabal_bin.is_symlink() or not cabal_bin.is_file():
            return None

        try:
            result = execute_out([str(cabal_bin), "--numeric-version"])
        except ProcessError as e:
            logger.debug(f"Could not run {cabal_bin}: {e}")
            return None

        reported = result.stdout.strip()
        if not result.ok or not reported:
            return None
        return parse_version(reported)

    # ------------------------------------------------------------------
    # Single version checks
    # ------------------------------------------------------------------

    def is_installed(self, tool: Tool, version: Union[TargetVersion, Version]) -> bool:
        """Whether a version of a tool is installed."""
        if isinstance(version, Version):
            version = TargetVersion(version)
        if tool is Tool.GHC:
            return self.ghc_installed(version)
        return version in self.installed_versions(tool)

    def ghc_installed(self, target_version: TargetVersion) -> bool:
        return ghc_dir(self.dirs, target_version).is_dir()

    def ghc_src_installed(self, target_version: TargetVersion) -> bool:
        """Whether a compiler version was built from source."""
        return (ghc_dir(self.dirs, target_version) / GHC_SRC_BUILT_FILE).is_file()

    def ghc_for_major_minor(
        self, major: int, minor: int, target: Optional[str] = None
    ) -> Optional[TargetVersion]:
        """The latest installed compiler satisfying major.minor for target."""
        return latest_installed_for_major_minor(
            self.installed_versions(Tool.GHC), major, minor, target
        )

    # ------------------------------------------------------------------
    # Compiler binaries
    # ------------------------------------------------------------------

    def tool_files(self, target_version: TargetVersion) -> List[str]:
        """
        Unversioned binary names of an installed compiler.

        Distributions built with the legacy make system ship both ``ghc``
        and ``ghc-<internal version>``, where the internal version of
        pre-releases is date based and differs from the directory name.
        The layout is detected from the compiler binaries present: one means
        unversioned binaries only, two means the longer name carries the
        suffix to strip, and binaries containing it are left out.

        Returns:
            e.g. ['ghc', 'ghc-pkg', 'ghci', 'haddock', 'hpc', 'hsc2hs', 'runghc']

        Raises:
            NotInstalled: If the installation directory does not exist
            UnexpectedListLength: If the binary layout is not understood
        """
        ghcdir = ghc_dir(self.dirs, target_version)
        if not ghcdir.is_dir():
            raise NotInstalled(Tool.GHC, target_version)

        bindir = ghcdir / "bin"
        names = [drop_exe_suffix(f) for f in sorted(os.listdir(bindir))]

        candidates = sorted(
            (
                drop_exe_suffix(f)
                for f in find_files(bindir, _GHC_BINARY_RE)
                if not any(x in f for x in _GHC_BINARY_EXCLUDES)
            ),
            key=len,
        )

        if len(candidates) == 1:
            return names

        if len(candidates) == 2:
            ghc, ghc_ver = candidates
            symver = ghc_ver[len(ghc) + 1 :] if ghc_ver.startswith(f"{ghc}-") else ""
            if symver:
                logger.debug(f"Internal version of {target_version}: {symver}")
                return [n for n in names if symver not in n]
            raise UnexpectedListLength(
                f"Could not find internal version of GHC {target_version}", candidates
            )

        raise UnexpectedListLength(
            f"Expected one or two ghc binaries in {bindir}, found {len(candidates)}",
            candidates,
        )

    # ------------------------------------------------------------------
    # Language server binaries
    # ------------------------------------------------------------------

    def hls_server_binaries(self, version: Version) -> List[str]:
        """Server binaries of an HLS version, e.g. 'haskell-language-server-8.10.4~1.2.0'."""
        return find_files(
            self.dirs.bin_dir,
            rf"^haskell-language-server-.*~{re.escape(str(version))}{re.escape(EXE_EXT)}$",
        )

    def hls_wrapper_binary(self, version: Version) -> Optional[str]:
        """
        The wrapper binary of an HLS version, if installed.

        Raises:
            UnexpectedListLength: If several wrappers exist for one version
        """
        wrappers = find_files(
            self.dirs.bin_dir,
            rf"^haskell-language-server-wrapper-{re.escape(str(version))}{re.escape(EXE_EXT)}$",
        )
        if not wrappers:
            return None
        if len(wrappers) > 1:
            raise UnexpectedListLength(
                "There were multiple hls wrapper binaries for a single version",
                wrappers,
            )
        return wrappers[0]

    def hls_all_binaries(self, version: Version) -> List[str]:
        """Wrapper and server binaries of an HLS version."""
        wrapper = self.hls_wrapper_binary(version)
        return ([wrapper] if wrapper else []) + self.hls_server_binaries(version)

    def hls_symlinks(self) -> List[str]:
        """The HLS entries of the bin directory that are symlinks."""
        return [
            name
            for name in find_files(self.dirs.bin_dir, r"^haskell-language-server-.*$")
            if (self.dirs.bin_dir / name).is_symlink()
        ]
