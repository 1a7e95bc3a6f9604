"""
Subprocess execution for build steps, patching and tool introspection.

Exit code and captured stdout/stderr are the only contract with the
external tools. Logged executions keep their output in the logs directory
so a failed build can be inspected afterwards.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .exceptions import ProcessError
from .filesystem import find_executable
from .platform import PlatformInfo

logger = logging.getLogger(__name__)


@dataclass
class CapturedProcess:
    """Result of a finished process."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def execute_out(
    command: Sequence[str], workdir: Optional[Union[str, Path]] = None
) -> CapturedProcess:
    """
    Run a command and capture its output.

    Raises:
        ProcessError: If the command cannot be started
    """
    logger.debug(f"Executing: {' '.join(command)} (cwd: {workdir or '.'})")
    try:
        result = subprocess.run(
            list(command),
            cwd=workdir,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as e:
        raise ProcessError(command, None, stderr=str(e)) from e

    return CapturedProcess(result.returncode, result.stdout, result.stderr)


def exec_logged(
    command: Sequence[str],
    workdir: Optional[Union[str, Path]],
    log_name: str,
    logs_dir: Path,
) -> None:
    """
    Run a command, writing its output to <logs_dir>/<log_name>.log.

    Raises:
        ProcessError: If the command cannot be started or exits non-zero
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"{log_name}.log"

    result = execute_out(command, workdir)

    with open(log_file, "a", encoding="utf-8") as f:
        f.write(f"$ {' '.join(command)}\n")
        f.write(result.stdout)
        f.write(result.stderr)

    if not result.ok:
        logger.error(f"{command[0]} failed, see {log_file}")
        raise ProcessError(command, result.exit_code, result.stdout, result.stderr)


def make_command(search_paths: Optional[List[Path]] = None) -> str:
    """Return 'gmake' if it is on the search path, otherwise 'make'."""
    return "gmake" if find_executable("gmake", search_paths) else "make"


def make(
    args: Sequence[str],
    workdir: Optional[Union[str, Path]],
    logs_dir: Path,
    log_name: str = "ghc-make",
) -> None:
    """
    Run make (GNU make preferred) with output logged.

    Raises:
        ProcessError: If make fails
    """
    exec_logged([make_command(), *args], workdir, log_name, logs_dir)


def darwin_notarization(platform: PlatformInfo, path: Union[str, Path]) -> None:
    """
    Clear the quarantine attribute from an unpacked tree on macOS.

    Does nothing on other platforms.

    Raises:
        ProcessError: If xattr fails
    """
    if platform.os != "macos":
        return

    command = ["xattr", "-r", "-d", "com.apple.quarantine", str(path)]
    result = execute_out(command)
    if not result.ok:
        raise ProcessError(command, result.exit_code, result.stdout, result.stderr)
