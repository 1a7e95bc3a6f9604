"""
ghcupkit - version manager engine for the Haskell toolchain.

Installs, switches between and removes coexisting versions of GHC, cabal,
HLS and stack (including cross compilers) under a shared base directory.
"""

__version__ = "0.1.0"
