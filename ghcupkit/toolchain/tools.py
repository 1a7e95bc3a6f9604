"""
The tools managed by ghcupkit and their naming conventions.
"""

import enum
from typing import Optional


class Tool(enum.Enum):
    """A managed tool; the value is its canonical binary name prefix."""

    GHC = "ghc"
    CABAL = "cabal"
    HLS = "haskell-language-server-wrapper"
    STACK = "stack"

    @property
    def prefix(self) -> str:
        """Binary name prefix used for pattern matching and symlink naming."""
        return self.value

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def catalog_key(self) -> str:
        """Key of this tool in the version catalog document."""
        return _CATALOG_KEYS[self]

    @property
    def has_install_dir(self) -> bool:
        """
        True for tools installed into their own ``<base>/<tool>/<version>``
        directory; the others live as versioned binaries in the shared bin
        directory.
        """
        return self is Tool.GHC

    def link_name(self, target: Optional[str] = None) -> str:
        """
        Name of the active symlink in the shared bin directory.

        Example:
            >>> Tool.GHC.link_name("armv7-unknown-linux-gnueabihf")
            'armv7-unknown-linux-gnueabihf-ghc'
        """
        if target:
            return f"{target}-{self.prefix}"
        return self.prefix

    @classmethod
    def from_catalog_key(cls, key: str) -> "Tool":
        for tool, name in _CATALOG_KEYS.items():
            if name == key.lower():
                return tool
        raise ValueError(f"Unknown tool: {key}")

    def __str__(self) -> str:
        return self.display_name


# Aliases matching the roles the tools play
COMPILER = Tool.GHC
BUILD_TOOL = Tool.CABAL
LANGUAGE_SERVER = Tool.HLS
PROJECT_TOOL = Tool.STACK

_DISPLAY_NAMES = {
    Tool.GHC: "GHC",
    Tool.CABAL: "cabal",
    Tool.HLS: "HLS",
    Tool.STACK: "stack",
}

_CATALOG_KEYS = {
    Tool.GHC: "ghc",
    Tool.CABAL: "cabal",
    Tool.HLS: "hls",
    Tool.STACK: "stack",
}
