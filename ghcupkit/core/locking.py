"""
Concurrent access control for ghcupkit.

Switching the active version of a tool rewrites several symlinks in the
shared bin directory. The engine itself does no locking; callers that may
run concurrently serialize those rewrites per (tool, target) pair with the
file locks provided here.

Usage:
    from ghcupkit.core.locking import LockManager

    lock_manager = LockManager(dirs.lock_dir)
    with lock_manager.tool_lock("ghc", target=None, timeout=30):
        switcher.set_active(Tool.GHC, target_version)
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    File-based, cross-process locks for ghcupkit resources.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (created if missing)
        """
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path(self, tool: str, target: Optional[str] = None) -> Path:
        """Lock file guarding one (tool, target) pair."""
        name = f"{target}-{tool}" if target else tool
        safe_name = name.replace("/", "-").replace("\\", "-").replace(":", "-")
        return self.lock_dir / f"{safe_name}.lock"

    @contextmanager
    def tool_lock(self, tool: str, target: Optional[str] = None, timeout: int = 30):
        """
        Hold the lock for a (tool, target) pair.

        Args:
            tool: Tool name, e.g. 'ghc' or 'cabal'
            target: Cross-compilation target triple, if any
            timeout: Maximum wait time in seconds

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self.lock_path(tool, target)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired tool lock: {lock_path}")
                yield
                logger.debug(f"Released tool lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire lock for {tool} after {timeout}s. "
                "Another process may be switching this tool."
            )
            raise LockTimeout(str(lock_path)) from e


__all__ = ["LockManager", "LockTimeout"]
