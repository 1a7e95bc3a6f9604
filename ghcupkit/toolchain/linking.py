"""
ghcupkit/toolchain/linking.py

Management of the symlinks that select the active version of each tool.

The shared bin directory holds one symlink per tool (and per target for
cross compilers) naming the active version:

    bin/ghc                -> ../ghc/8.10.4/bin/ghc
    bin/armv7-...-ghc      -> ../ghc/armv7-...-8.10.4/bin/armv7-...-ghc
    bin/cabal              -> cabal-3.4.0.0
    bin/haskell-language-server-wrapper -> haskell-language-server-wrapper-1.2.0

Link targets are relative so the installation stays relocatable. Links
are replaced atomically. The switcher does no locking of its own; see
ghcupkit.core.locking for serializing concurrent switches.
"""

import enum
import logging
import os
from pathlib import Path
from typing import List, Optional, Set

from ghcupkit.config.settings import AppState
from ghcupkit.core.directory import ghc_dir
from ghcupkit.core.exceptions import NotInstalled, ParseError
from ghcupkit.core.filesystem import (
    create_symlink,
    is_broken_symlink,
    relative_symlink,
    remove_file,
)
from ghcupkit.core.platform import EXE_EXT, drop_exe_suffix
from ghcupkit.toolchain.installed import InstalledScanner
from ghcupkit.toolchain.tools import Tool
from ghcupkit.toolchain.version import (
    TargetVersion,
    Version,
    major_minor,
    parse_bin_link,
    parse_ghc_link,
    parse_version,
)

logger = logging.getLogger(__name__)

# Link created by old installations, removed together with the plain links
LEGACY_HADDOCK_LINK = "haddock-ghc"


class SetMode(enum.Enum):
    """Which compiler symlinks to create."""

    PLAIN = "plain"  # ghc, ghci, ...
    MAJOR_MINOR = "xy"  # ghc-8.10, ghci-8.10, ...
    FULL = "xyz"  # ghc-8.10.4, ghci-8.10.4, ...


class SymlinkSwitcher:
    """Creates, resolves and removes the active-version symlinks."""

    def __init__(self, app_state: AppState, scanner: Optional[InstalledScanner] = None):
        """
        Initialize switcher.

        Args:
            app_state: Settings and directory layout
            scanner: Installed-set scanner (created from app_state if None)
        """
        self.app_state = app_state
        self.dirs = app_state.dirs
        self.scanner = scanner or InstalledScanner(app_state)

    # ------------------------------------------------------------------
    # Destinations
    # ------------------------------------------------------------------

    def link_destination(self, binary: str, target_version: TargetVersion) -> str:
        """
        Relative path from the bin directory to a compiler binary.

        Example:
            >>> switcher.link_destination("ghc", parse_target_version("8.10.4"))
            '../ghc/8.10.4/bin/ghc'
        """
        ghcd = ghc_dir(self.dirs, target_version)
        return relative_symlink(self.dirs.bin_dir, ghcd / "bin" / f"{binary}{EXE_EXT}")

    @staticmethod
    def bin_link_destination(tool: Tool, version: Version) -> str:
        """Versioned binary a bin-directory tool link points at, e.g. 'cabal-3.4.0.0'."""
        return f"{tool.prefix}-{version}{EXE_EXT}"

    def _bin_path(self, name: str) -> Path:
        return self.dirs.bin_dir / f"{name}{EXE_EXT}"

    # ------------------------------------------------------------------
    # Set
    # ------------------------------------------------------------------

    def set_active(
        self,
        tool: Tool,
        target_version: TargetVersion,
        mode: SetMode = SetMode.PLAIN,
    ) -> TargetVersion:
        """
        Make a version the active one for its tool and target.

        Each link is created under a temporary name and renamed into place.
        Links of the previously active compiler that the new one does not
        provide are removed afterwards.

        Raises:
            NotInstalled: If the version is not installed
            UnexpectedListLength: If the compiler binary layout is not understood
        """
        if tool is Tool.GHC:
            self._set_ghc(target_version, mode)
        elif tool is Tool.HLS:
            self._set_hls(target_version.version)
        else:
            self._set_bin_tool(tool, target_version.version)

        logger.info(f"{tool} {target_version} is now active")
        return target_version

    def _set_ghc(self, target_version: TargetVersion, mode: SetMode) -> None:
        files = self.scanner.tool_files(target_version)

        if mode is SetMode.PLAIN:
            old_files = self._active_ghc_files(target_version.target)
            suffix = ""
        elif mode is SetMode.MAJOR_MINOR:
            mj, mi = major_minor(target_version.version)
            old_files = set()
            suffix = f"-{mj}.{mi}"
        else:
            old_files = set()
            suffix = f"-{target_version.version}"

        for f in files:
            create_symlink(
                self.link_destination(f, target_version), self._bin_path(f + suffix)
            )

        for stale in sorted(old_files - set(files)):
            remove_file(self._bin_path(stale))

    def _active_ghc_files(self, target: Optional[str]) -> Set[str]:
        try:
            current = self.get_active(Tool.GHC, target)
        except ParseError:
            return set()
        if current is None:
            return set()
        try:
            return set(self.scanner.tool_files(current))
        except NotInstalled:
            return set()

    def _set_bin_tool(self, tool: Tool, version: Version) -> None:
        destination = self.bin_link_destination(tool, version)
        if not (self.dirs.bin_dir / destination).is_file():
            raise NotInstalled(tool, version)
        create_symlink(destination, self._bin_path(tool.prefix))

    def _set_hls(self, version: Version) -> None:
        servers = self.scanner.hls_server_binaries(version)
        wrapper = self.bin_link_destination(Tool.HLS, version)
        if not servers or not (self.dirs.bin_dir / wrapper).is_file():
            raise NotInstalled(Tool.HLS, version)

        # old server links might name different compiler versions
        old_links = set(self.scanner.hls_symlinks())

        new_links = set()
        for server in servers:
            link_name = drop_exe_suffix(server).split("~", 1)[0] + EXE_EXT
            create_symlink(server, self.dirs.bin_dir / link_name)
            new_links.add(link_name)

        wrapper_link = f"{Tool.HLS.prefix}{EXE_EXT}"
        create_symlink(wrapper, self.dirs.bin_dir / wrapper_link)
        new_links.add(wrapper_link)

        for stale in sorted(old_links - new_links):
            remove_file(self.dirs.bin_dir / stale)

    # ------------------------------------------------------------------
    # Get
    # ------------------------------------------------------------------

    def get_active(self, tool: Tool, target: Optional[str] = None) -> Optional[TargetVersion]:
        """
        The active version of a tool, if any.

        A broken link is logged and treated as no active version. Targets
        only apply to the compiler.

        Raises:
            ParseError: If the compiler link does not point into a compiler
                installation directory
        """
        if tool is not Tool.GHC:
            target = None

        link = self._bin_path(tool.link_name(target))

        if not link.is_symlink():
            if tool is Tool.CABAL:
                legacy = self.scanner.legacy_cabal_version()
                return TargetVersion(legacy) if legacy is not None else None
            return None

        if is_broken_symlink(link):
            logger.warning(f"Symlink {link} is broken.")
            return None

        try:
            destination = os.readlink(link)
        except FileNotFoundError:
            return None

        if tool is Tool.GHC:
            try:
                return parse_ghc_link(destination)
            except ParseError as e:
                # ghc -> ghc-9.2.1 within the bin directory
                try:
                    version = parse_bin_link(tool.link_name(target), destination)
                except ParseError:
                    raise e from None
                return TargetVersion(version, target)

        try:
            return TargetVersion(parse_bin_link(tool.prefix, destination))
        except ParseError as e:
            logger.warning(
                f'Failed to parse {tool} symlink target with: "{e}". '
                f"The symlink {link} needs to point to a valid {tool} binary, "
                f"such as '{tool.prefix}-<version>'."
            )
            return None

    def hls_ghc_versions(self) -> List[Version]:
        """Compiler versions supported by the active HLS."""
        active = self.get_active(Tool.HLS)
        if active is None:
            return []

        versions = []
        for server in self.scanner.hls_server_binaries(active.version):
            name = drop_exe_suffix(server).split("~", 1)[0]
            try:
                versions.append(parse_version(name[len("haskell-language-server-") :]))
            except ParseError:
                logger.debug(f"Unparsable HLS server binary: {server}")
        return versions

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove_minor_symlinks(self, target_version: TargetVersion) -> None:
        """
        Remove the full-version compiler links, e.g. ghc-8.10.4.

        Raises:
            NotInstalled: If the version is not installed
        """
        for f in self.scanner.tool_files(target_version):
            remove_file(self._bin_path(f"{f}-{target_version.version}"))

    def remove_major_symlinks(self, target_version: TargetVersion) -> None:
        """
        Remove the major.minor compiler links, e.g. ghc-8.10.

        Raises:
            NotInstalled: If the version is not installed
            ParseError: If the version has no major.minor shape
        """
        mj, mi = major_minor(target_version.version)
        for f in self.scanner.tool_files(target_version):
            remove_file(self._bin_path(f"{f}-{mj}.{mi}"))

    def remove_plain(self, target: Optional[str] = None) -> None:
        """
        Remove the plain links of the active compiler for target, if any.

        Raises:
            NotInstalled: If the active version's directory disappeared
        """
        current = self.get_active(Tool.GHC, target)
        if current is None:
            return

        for f in self.scanner.tool_files(current):
            remove_file(self._bin_path(f))
        remove_file(self.dirs.bin_dir / LEGACY_HADDOCK_LINK)

    def unset(self, tool: Tool) -> None:
        """Remove the active link of a bin-directory tool (and HLS server links)."""
        if tool is Tool.GHC:
            self.remove_plain()
            return

        if tool is Tool.HLS:
            for name in self.scanner.hls_symlinks():
                remove_file(self.dirs.bin_dir / name)
            return

        link = self._bin_path(tool.prefix)
        if link.is_symlink():
            remove_file(link)
