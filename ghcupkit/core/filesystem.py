"""
File system utilities for ghcupkit.

This module provides the file operations the installation engine relies on:
- Archive classification, extraction and listing (tar, tar.gz, tar.xz, tar.bz2, zip)
- Descent into the meaningful subdirectory of an unpacked archive
- Relative symlink creation with atomic replacement, broken link detection
- Idempotent removal of files and directory trees
- Lazy recursive directory traversal and copying

Extraction keeps file permissions and symlinks stored in the archive, since
toolchain distributions ship executables and internal links.
"""

import enum
import logging
import lzma
import os
import re
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .exceptions import ExtractError, TarDirDoesNotExist, UnknownArchive
from .platform import IS_WINDOWS

logger = logging.getLogger(__name__)

# Errors raised by the decompressors and container readers for corrupt input
_ARCHIVE_READ_ERRORS = (
    tarfile.TarError,
    zipfile.BadZipFile,
    lzma.LZMAError,
    zlib.error,
    EOFError,
    OSError,
)


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/.ghcup/bin"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def find_executable(
    name: str, search_paths: Optional[List[Path]] = None
) -> Optional[Path]:
    """
    Find an executable in the system PATH or provided search paths.

    Args:
        name: Executable name (e.g., 'make', 'gmake')
        search_paths: Optional list of directories to search

    Returns:
        Path to executable if found, None otherwise
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if search_paths is None:
        path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    for directory in search_paths:
        for ext in extensions:
            exe_path = directory / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


def relative_symlink(from_dir: Union[str, Path], to_path: Union[str, Path]) -> str:
    """
    Compute the relative path from a directory to a file, for use as a
    symlink target placed inside that directory.

    Relative link targets keep the whole installation relocatable.

    Example:
        >>> relative_symlink("/home/u/.ghcup/bin", "/home/u/.ghcup/ghc/8.10.4/bin/ghc")
        '../ghc/8.10.4/bin/ghc'
    """
    return os.path.relpath(os.path.abspath(to_path), os.path.abspath(from_dir))


# ============================================================================
# Symlinks
# ============================================================================


def is_broken_symlink(path: Union[str, Path]) -> bool:
    """Return True if path is a symlink whose target does not exist."""
    path = Path(path)
    return path.is_symlink() and not path.exists()


def create_symlink(destination: str, link_path: Union[str, Path]) -> None:
    """
    Point link_path at destination, replacing any existing entry atomically.

    The new link is created under a temporary name in the same directory
    and renamed over link_path, so readers observe either the old or the
    new link, never a missing one.

    Args:
        destination: Link target, usually relative to the link's directory
        link_path: Where the symlink lives
    """
    link_path = Path(link_path)
    link_path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"ln -s {destination} {link_path}")

    fd, tmp_name = tempfile.mkstemp(
        dir=link_path.parent, prefix=f".{link_path.name}.", suffix=".tmp"
    )
    os.close(fd)
    os.unlink(tmp_name)

    try:
        os.symlink(destination, tmp_name)
        os.replace(tmp_name, link_path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def remove_file(path: Union[str, Path]) -> bool:
    """
    Remove a file or symlink, ignoring a missing one.

    Returns:
        True if something was removed
    """
    logger.debug(f"rm -f {path}")
    try:
        os.unlink(path)
        return True
    except FileNotFoundError:
        return False


# ============================================================================
# Directories
# ============================================================================


def safe_rmtree(path: Union[str, Path]) -> None:
    """
    Remove a directory tree. A missing directory is not an error.

    Example:
        >>> safe_rmtree('/home/u/.ghcup/tmp/ghc-build')
        >>> safe_rmtree('/home/u/.ghcup/tmp/ghc-build')  # already gone, no error
    """
    path = Path(path)
    logger.debug(f"rm -rf {path}")

    if path.is_symlink():
        path.unlink()
        return

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, p, exc):
                """Error handler for Windows read-only files."""
                if not os.access(p, os.W_OK):
                    os.chmod(p, stat.S_IWRITE)
                    func(p)
                else:
                    raise exc[1]

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)
    except FileNotFoundError:
        pass


def create_dir_recursive(path: Union[str, Path]) -> Path:
    """
    Create a directory and its parents.

    Unlike a plain mkdir, an existing symlink that points to a directory is
    accepted as the directory itself.
    """
    path = Path(path)
    try:
        os.makedirs(path, exist_ok=True)
    except FileExistsError:
        if not (path.is_symlink() and Path(os.path.realpath(path)).is_dir()):
            raise
    return path


def iter_directory_contents_recursive(topdir: Union[str, Path]) -> Iterator[Path]:
    """
    Lazily yield all files below topdir, relative to topdir.

    Files of a directory are yielded before the files of its subdirectories.
    The generator only touches the file system as it is consumed, so a
    caller may stop early.
    """
    topdir = Path(topdir)
    pending = [Path("")]

    while pending:
        current = pending.pop(0)
        subdirs = []
        with os.scandir(topdir / current) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            rel = current / entry.name
            if entry.is_dir():
                subdirs.append(rel)
            else:
                yield rel
        pending = subdirs + pending


def copy_directory_recursive(
    source: Union[str, Path], destination: Union[str, Path]
) -> None:
    """
    Recursively copy the contents of one directory into another.

    Parent directories are created as needed; existing files are overwritten.
    """
    source = Path(source)
    destination = Path(destination)

    for rel in iter_directory_contents_recursive(source):
        dest_item = destination / rel
        dest_item.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source / rel, dest_item)


# ============================================================================
# Archive Classification
# ============================================================================


class ArchiveFormat(enum.Enum):
    """Archive container/compression combinations understood by the engine."""

    TAR = "tar"
    TAR_GZ = "tar.gz"
    TAR_XZ = "tar.xz"
    TAR_BZ2 = "tar.bz2"
    ZIP = "zip"


# Order matters: ".tar" must be tested after the compressed variants
_SUFFIXES = [
    ((".tar.gz", ".tgz"), ArchiveFormat.TAR_GZ),
    ((".tar.xz", ".txz"), ArchiveFormat.TAR_XZ),
    ((".tar.bz2", ".tbz2"), ArchiveFormat.TAR_BZ2),
    ((".tar",), ArchiveFormat.TAR),
    ((".zip",), ArchiveFormat.ZIP),
]

_TAR_MODES = {
    ArchiveFormat.TAR: "r:",
    ArchiveFormat.TAR_GZ: "r:gz",
    ArchiveFormat.TAR_XZ: "r:xz",
    ArchiveFormat.TAR_BZ2: "r:bz2",
}


def classify_archive(filename: Union[str, Path]) -> ArchiveFormat:
    """
    Classify an archive by its file name suffix.

    Raises:
        UnknownArchive: If the suffix is not recognized
    """
    name = Path(filename).name
    for suffixes, fmt in _SUFFIXES:
        if name.endswith(suffixes):
            return fmt
    raise UnknownArchive(name)


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(member: str, destination: Path) -> None:
    """Reject archive members that would land outside destination."""
    member_path = os.path.abspath(os.path.join(destination, member))
    if not is_relative_to(Path(member_path), Path(os.path.abspath(destination))):
        raise ExtractError(
            destination,
            f"archive member '{member}' attempts directory traversal",
        )


def unpack_to_dir(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Unpack an archive into a destination directory.

    Compressed tarballs are decompressed and the tar stream unpacked; zip
    files are unpacked directly. Permissions and symlinks are preserved.

    Raises:
        UnknownArchive: If the archive format is not recognized
        ExtractError: If the archive is missing, corrupt or unsafe

    Example:
        >>> unpack_to_dir('ghc-8.10.4-x86_64-deb10-linux.tar.xz', '/tmp/ghcup-abc')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)
    fmt = classify_archive(archive_path)

    logger.info(f"Unpacking: {archive_path.name} to {destination}")

    if not archive_path.is_file():
        raise ExtractError(archive_path, "archive not found")

    destination.mkdir(parents=True, exist_ok=True)

    try:
        if fmt is ArchiveFormat.ZIP:
            _extract_zip(archive_path, destination)
        else:
            _extract_tar(archive_path, destination, _TAR_MODES[fmt])
    except ExtractError:
        raise
    except _ARCHIVE_READ_ERRORS as e:
        raise ExtractError(archive_path, str(e)) from e


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> None:
    """Extract a tar archive with the given compression mode."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()

        for member in members:
            _validate_archive_path(member.name, destination)

        # The "tar" filter keeps permissions and in-tree links
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive, restoring unix permissions and symlinks."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()

        for member in members:
            _validate_archive_path(member.filename, destination)

        for member in members:
            mode = member.external_attr >> 16
            target = destination / member.filename

            if stat.S_ISLNK(mode):
                link_dest = zf.read(member).decode("utf-8")
                target.parent.mkdir(parents=True, exist_ok=True)
                if target.is_symlink() or target.exists():
                    target.unlink()
                os.symlink(link_dest, target)
                continue

            zf.extract(member, destination)
            if mode and not member.is_dir():
                os.chmod(target, stat.S_IMODE(mode))


def list_archive_files(archive_path: Union[str, Path]) -> List[str]:
    """
    List the member paths of an archive without extracting it.

    Raises:
        UnknownArchive: If the archive format is not recognized
        ExtractError: If the archive is missing or corrupt
    """
    archive_path = Path(archive_path)
    fmt = classify_archive(archive_path)

    if not archive_path.is_file():
        raise ExtractError(archive_path, "archive not found")

    try:
        if fmt is ArchiveFormat.ZIP:
            with zipfile.ZipFile(archive_path, "r") as zf:
                return zf.namelist()
        with tarfile.open(archive_path, _TAR_MODES[fmt]) as tar:
            return tar.getnames()
    except _ARCHIVE_READ_ERRORS as e:
        raise ExtractError(archive_path, str(e)) from e


# ============================================================================
# Descending into unpacked archives
# ============================================================================


@dataclass(frozen=True)
class RealDir:
    """A literal relative path inside the unpacked archive."""

    path: str

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class RegexDir:
    """
    Path-segment patterns, separated like a path, e.g. ``ghc-.*/bin``.

    Each segment is a case-insensitive regular expression matched against
    the children of the directory reached so far.
    """

    pattern: str

    def segments(self) -> List[str]:
        return [s for s in re.split(r"[/\\]", self.pattern) if s]

    def __str__(self) -> str:
        return self.pattern


TarDir = Union[RealDir, RegexDir]


def _iter_children(directory: Path) -> Iterator[str]:
    """Yield names of the entries of a directory; nothing if it is unreadable."""
    try:
        with os.scandir(directory) as it:
            for entry in it:
                yield entry.name
    except OSError:
        return


def into_subdir(base_dir: Union[str, Path], tar_dir: TarDir) -> Path:
    """
    Locate the meaningful directory inside an unpacked archive.

    Upstream archives do not always unpack into a predictably named top
    directory (build dates or revisions end up in the name), so a descent
    spec may be a regex per path segment. At every step the matching
    children are sorted and the first directory is taken.

    Raises:
        TarDirDoesNotExist: If the path does not exist or a segment matches nothing

    Example:
        >>> into_subdir('/tmp/ghcup-abc', RegexDir('ghc-.*'))
        PosixPath('/tmp/ghcup-abc/ghc-9.2.1-x86_64-unknown-linux')
    """
    base_dir = Path(base_dir)

    if isinstance(tar_dir, RealDir):
        candidate = base_dir / tar_dir.path
        if not candidate.is_dir():
            raise TarDirDoesNotExist(tar_dir)
        return candidate

    current = base_dir
    for segment in tar_dir.segments():
        regex = re.compile(segment, re.IGNORECASE)
        matches = sorted(
            name
            for name in _iter_children(current)
            if regex.search(name) and (current / name).is_dir()
        )
        if not matches:
            raise TarDirDoesNotExist(tar_dir)
        current = current / matches[0]
        logger.debug(f"Descending into {current}")

    return current


# ============================================================================
# Public API
# ============================================================================

__all__ = [
    "is_relative_to",
    "find_executable",
    "relative_symlink",
    "is_broken_symlink",
    "create_symlink",
    "remove_file",
    "safe_rmtree",
    "create_dir_recursive",
    "iter_directory_contents_recursive",
    "copy_directory_recursive",
    "ArchiveFormat",
    "classify_archive",
    "unpack_to_dir",
    "list_archive_files",
    "RealDir",
    "RegexDir",
    "TarDir",
    "into_subdir",
]
