"""
Build orchestration with guaranteed cleanup.

A build runs in a scratch directory and may populate an installation
directory. Whatever happens, the installation directory is never left
half populated, and the scratch directory is kept or removed according to
the configured retention policy (KeepDirs):

    policy   | after success | after failure
    ---------+---------------+--------------
    always   | kept          | kept
    errors   | kept          | removed
    never    | removed       | removed
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, TypeVar, Union

from ghcupkit.config.settings import AppState, KeepDirs
from ghcupkit.core.exceptions import BuildFailed, PatchFailed, ProcessError
from ghcupkit.core.filesystem import safe_rmtree
from ghcupkit.core.process import exec_logged, execute_out, make

logger = logging.getLogger(__name__)

T = TypeVar("T")

PathLike = Union[str, Path]


def _cleanup_after_failure(
    build_dir: Path, install_dir: Optional[Path], keep_dirs: KeepDirs
) -> None:
    # each removal runs even if the other one fails; the build error wins
    if install_dir is not None:
        logger.info(f"Removing partial installation {install_dir}")
        _remove_after_failure(install_dir)
    if keep_dirs is not KeepDirs.ALWAYS:
        _remove_after_failure(build_dir)
    else:
        logger.info(f"Keeping build directory {build_dir}")


def _remove_after_failure(path: Path) -> None:
    try:
        safe_rmtree(path)
    except OSError as e:
        logger.error(f"Failed to remove {path}: {e}")


@contextmanager
def build_scope(
    build_dir: PathLike,
    install_dir: Optional[PathLike],
    keep_dirs: KeepDirs,
) -> Iterator[Path]:
    """
    Scope a build, cleaning up on every exit path.

    Exceptions raised in the body are re-raised as BuildFailed after
    cleanup. KeyboardInterrupt and other non-Exception exits run the same
    cleanup and propagate unchanged.

    Example:
        >>> with build_scope(tmp / "ghc-build", dirs.base_dir / "ghc" / "9.2.1", KeepDirs.ERRORS):
        ...     make(["install"], tmp / "ghc-build", dirs.logs_dir)
    """
    build_dir = Path(build_dir)
    install_dir = Path(install_dir) if install_dir is not None else None

    try:
        yield build_dir
    except Exception as e:
        logger.error(f"Build in {build_dir} failed: {e}")
        _cleanup_after_failure(build_dir, install_dir, keep_dirs)
        raise BuildFailed(build_dir, e) from e
    except BaseException:
        _cleanup_after_failure(build_dir, install_dir, keep_dirs)
        raise

    if keep_dirs is KeepDirs.NEVER:
        safe_rmtree(build_dir)


def run_build_action(
    build_dir: PathLike,
    install_dir: Optional[PathLike],
    keep_dirs: KeepDirs,
    action: Callable[[], T],
) -> T:
    """
    Run action inside build_scope and return its result.

    Raises:
        BuildFailed: If action raised; cleanup has already happened
    """
    with build_scope(build_dir, install_dir, keep_dirs):
        return action()


def list_patches(patch_dir: PathLike) -> List[str]:
    """Patch files of a directory in lexical order."""
    patch_dir = Path(patch_dir)
    return sorted(name for name in os.listdir(patch_dir) if (patch_dir / name).is_file())


def apply_patches(
    patch_dir: PathLike,
    target_dir: PathLike,
    logs_dir: Optional[Path] = None,
) -> None:
    """
    Apply the patches of patch_dir to target_dir, in lexical order.

    Patch sets are ordered and build on each other, so the first failure
    stops the sequence. Output goes to <logs_dir>/patch.log; without a
    logs_dir it is only kept in the PatchFailed error.

    Raises:
        PatchFailed: Naming the first patch that did not apply
    """
    patch_dir = Path(patch_dir)
    target_dir = Path(target_dir)

    for patch in list_patches(patch_dir):
        patch_path = patch_dir / patch
        command = ["patch", "-p1", "-i", str(patch_path)]
        logger.info(f"Applying patch {patch_path}")
        try:
            if logs_dir is not None:
                exec_logged(command, target_dir, "patch", logs_dir)
            else:
                result = execute_out(command, target_dir)
                if not result.ok:
                    raise ProcessError(
                        command, result.exit_code, result.stdout, result.stderr
                    )
        except ProcessError as e:
            raise PatchFailed(patch, e) from e


class BuildRunner:
    """Runs build steps with the retention policy and logs of an AppState."""

    def __init__(self, app_state: AppState):
        """
        Initialize build runner.

        Args:
            app_state: Settings (retention policy) and directory layout (logs)
        """
        self.app_state = app_state

    @property
    def keep_dirs(self) -> KeepDirs:
        return self.app_state.settings.keep_dirs

    def scope(self, build_dir: PathLike, install_dir: Optional[PathLike] = None):
        """build_scope with the configured retention policy."""
        return build_scope(build_dir, install_dir, self.keep_dirs)

    def run(
        self,
        build_dir: PathLike,
        install_dir: Optional[PathLike],
        action: Callable[[], T],
    ) -> T:
        """run_build_action with the configured retention policy."""
        return run_build_action(build_dir, install_dir, self.keep_dirs, action)

    def apply_patches(self, patch_dir: PathLike, target_dir: PathLike) -> None:
        apply_patches(patch_dir, target_dir, self.app_state.dirs.logs_dir)

    def make(self, args, workdir: Optional[PathLike] = None) -> None:
        """Run make in workdir, logging to ghc-make.log."""
        make(args, workdir, self.app_state.dirs.logs_dir)
