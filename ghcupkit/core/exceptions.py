"""
Centralized exception hierarchy for ghcupkit.

Every failure the engine reports derives from GhcupError so callers can
catch the whole family at once, or pick out a single kind.
"""

from pathlib import Path
from typing import Optional, Sequence, Union


# ============================================================================
# Base Exceptions
# ============================================================================


class GhcupError(Exception):
    """Base exception for all ghcupkit errors."""

    pass


class ConfigError(GhcupError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Parsing
# ============================================================================


class ParseError(GhcupError):
    """Malformed version, target or symlink path text."""

    def __init__(self, text: str, reason: str = ""):
        self.text = text
        self.reason = reason
        msg = f"Could not parse {text!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


# ============================================================================
# Archive Exceptions
# ============================================================================


class ArchiveError(GhcupError):
    """Base exception for archive handling."""

    pass


class UnknownArchive(ArchiveError):
    """Archive filename suffix is not recognized."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"Unknown archive format: {filename}. "
            "Supported: .tar, .tar.gz, .tar.xz, .tar.bz2, .zip"
        )


class ExtractError(ArchiveError):
    """Archive is recognized but could not be read or unpacked."""

    def __init__(self, archive: Union[str, Path], detail: str):
        self.archive = str(archive)
        self.detail = detail
        super().__init__(f"Failed to extract {archive}: {detail}")


class TarDirDoesNotExist(ArchiveError):
    """A descent path or pattern matched nothing inside an unpacked archive."""

    def __init__(self, tar_dir):
        self.tar_dir = tar_dir
        super().__init__(
            f"Directory {tar_dir} does not exist in the unpacked archive. "
            "The upstream archive layout may have changed."
        )


# ============================================================================
# Installation Exceptions
# ============================================================================


class NotInstalled(GhcupError):
    """Operation targets a tool version that is not installed."""

    def __init__(self, tool, version):
        self.tool = tool
        self.version = version
        super().__init__(f"{tool} {version} is not installed")


class UnexpectedListLength(GhcupError):
    """An 'exactly one/two matching binaries' invariant was violated."""

    def __init__(self, message: str, items: Optional[Sequence[str]] = None):
        self.items = list(items or [])
        if self.items:
            message = f"{message}: {', '.join(self.items)}"
        super().__init__(message)


# ============================================================================
# Build Exceptions
# ============================================================================


class ProcessError(GhcupError):
    """An external command exited unsuccessfully or could not be started."""

    def __init__(
        self,
        command: Sequence[str],
        exit_code: Optional[int],
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = list(command)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        if exit_code is None:
            msg = f"Could not execute {' '.join(self.command)}"
        else:
            msg = f"Command {' '.join(self.command)} failed with exit code {exit_code}"
        super().__init__(msg)


class PatchFailed(GhcupError):
    """A patch failed to apply; later patches were not attempted."""

    def __init__(self, patch: str, cause: Optional[BaseException] = None):
        self.patch = patch
        self.cause = cause
        super().__init__(f"Failed to apply patch {patch}")


class BuildFailed(GhcupError):
    """A build action failed; cleanup has already run."""

    def __init__(self, build_dir: Union[str, Path], cause: BaseException):
        self.build_dir = Path(build_dir)
        self.cause = cause
        super().__init__(
            f"Build failed in {build_dir}: {type(cause).__name__}: {cause}"
        )
