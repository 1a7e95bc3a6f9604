"""
Pytest configuration and shared fixtures for ghcupkit tests.
"""

import logging
import pytest
import tempfile
from pathlib import Path
from typing import Generator

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.installations import (
    app_state,
    cross_ghc,
    dirs,
    hadrian_ghc,
    hls_installation,
    legacy_ghc,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers",
        "integration: marks tests that run real external programs (tar, patch)",
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = temp_dir / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    monkeypatch.delenv("GHCUP_INSTALL_BASE_PREFIX", raising=False)

    return fake_home


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset any module-level caches between tests."""
    from ghcupkit.core import platform

    platform.detect_platform.cache_clear()

    yield


@pytest.fixture
def debug_logs(caplog):
    """Capture ghcupkit debug logging."""
    caplog.set_level(logging.DEBUG, logger="ghcupkit")
    return caplog
