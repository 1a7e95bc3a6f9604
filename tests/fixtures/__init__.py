"""Test fixtures for ghcupkit tests.

- installations: Fake installation layouts (compilers, cabal, HLS)

Import fixtures in your tests using:
    from tests.fixtures.installations import install_fake_ghc
"""

__all__ = [
    "installations",
]
