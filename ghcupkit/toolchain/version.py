"""
Version and target parsing, formatting and comparison.

A version is a sequence of chunks separated by ``.``; each chunk is a run of
integer and text units (``alpha1`` is the two units ``alpha`` and ``1``).
An optional epoch (``1:``), release part (``-alpha1``) and metadata
(``+build``) complete the grammar:

    [epoch:]chunk(.chunk)*[-chunk(.chunk)*][+meta]

Versions compare by epoch, then chunk by chunk (integers numerically,
text lexically, text before integers), then a version carrying a release
part sorts *before* the same version without one, so ``9.2.1-alpha1`` is
older than ``9.2.1``.

A target version prefixes a version with a cross-compilation triple, e.g.
``armv7-unknown-linux-gnueabihf-8.10.4``.

Symlinks in the shared bin directory record which version is active; the
link targets are parsed back into versions here as well.
"""

import functools
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from ghcupkit.core.exceptions import ParseError
from ghcupkit.core.platform import drop_exe_suffix

Unit = Union[int, str]
Chunk = Tuple[Unit, ...]

_EPOCH_RE = re.compile(r"(\d+):(.*)", re.DOTALL)
_CHUNK_RE = re.compile(r"[A-Za-z0-9]+")
_UNIT_RE = re.compile(r"\d+|[A-Za-z]+")
_META_RE = re.compile(r"[A-Za-z0-9.\-]+")
_SEP = r"[/\\]"


def _unit_key(unit: Unit):
    # text units sort before integer units
    if isinstance(unit, int):
        return (1, unit, "")
    return (0, 0, unit)


def _chunks_key(chunks: Tuple[Chunk, ...]):
    return tuple(tuple(_unit_key(u) for u in chunk) for chunk in chunks)


def _format_chunks(chunks: Tuple[Chunk, ...]) -> str:
    return ".".join("".join(str(u) for u in chunk) for chunk in chunks)


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """
    Immutable parsed version.

    Example:
        >>> parse_version("9.2.1-alpha1") < parse_version("9.2.1")
        True
        >>> str(parse_version("8.10.4"))
        '8.10.4'
    """

    chunks: Tuple[Chunk, ...]
    release: Tuple[Chunk, ...] = ()
    epoch: Optional[int] = None
    meta: Optional[str] = None

    def _key(self):
        release_key = (0, _chunks_key(self.release)) if self.release else (1, ())
        return (
            self.epoch or 0,
            _chunks_key(self.chunks),
            release_key,
            self.meta or "",
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = _format_chunks(self.chunks)
        if self.epoch is not None:
            text = f"{self.epoch}:{text}"
        if self.release:
            text += "-" + _format_chunks(self.release)
        if self.meta:
            text += "+" + self.meta
        return text

    def __repr__(self) -> str:
        return f"Version('{self}')"


def _parse_chunk(text: str, original: str) -> Chunk:
    if not _CHUNK_RE.fullmatch(text):
        raise ParseError(original, f"invalid version chunk {text!r}")
    return tuple(
        int(u) if u.isdigit() else u for u in _UNIT_RE.findall(text)
    )


def _parse_chunks(text: str, original: str) -> Tuple[Chunk, ...]:
    return tuple(_parse_chunk(c, original) for c in text.split("."))


def parse_version(text: str) -> Version:
    """
    Parse a version string.

    Raises:
        ParseError: If the text is not a valid version

    Example:
        >>> parse_version("1:8.10.4-rc1+deb")
        Version('1:8.10.4-rc1+deb')
    """
    original = text
    if not text:
        raise ParseError(original, "empty version")

    epoch = None
    m = _EPOCH_RE.fullmatch(text)
    if m:
        epoch = int(m.group(1))
        text = m.group(2)

    meta = None
    if "+" in text:
        text, meta = text.split("+", 1)
        if not _META_RE.fullmatch(meta):
            raise ParseError(original, f"invalid metadata {meta!r}")

    release: Tuple[Chunk, ...] = ()
    if "-" in text:
        text, release_text = text.split("-", 1)
        release = _parse_chunks(release_text, original)

    return Version(
        chunks=_parse_chunks(text, original),
        release=release,
        epoch=epoch,
        meta=meta,
    )


def pretty_version(version: Version) -> str:
    """Format a version; inverse of parse_version."""
    return str(version)


def major_minor(version: Version) -> Tuple[int, int]:
    """
    Extract (major, minor) from a version.

    The first chunk must be a single integer and the second chunk must
    start with an integer.

    Raises:
        ParseError: If the version does not have that shape
    """
    chunks = version.chunks
    if (
        len(chunks) >= 2
        and len(chunks[0]) == 1
        and isinstance(chunks[0][0], int)
        and isinstance(chunks[1][0], int)
    ):
        return chunks[0][0], chunks[1][0]
    raise ParseError(str(version), "could not parse X.Y from version")


def match_major_minor(version: Version, major: int, minor: int) -> bool:
    """Whether version decomposes to exactly (major, minor)."""
    try:
        return major_minor(version) == (major, minor)
    except ParseError:
        return False


# ============================================================================
# Target versions
# ============================================================================


@dataclass(frozen=True)
class TargetVersion:
    """
    A version plus an optional cross-compilation target triple.

    Identity is the (version, target) pair; ``tag`` labels a build variant
    and does not take part in comparisons.
    """

    version: Version
    target: Optional[str] = None
    tag: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        if self.target:
            return f"{self.target}-{self.version}"
        return str(self.version)


def _starts_with_plain_digits(text: str) -> bool:
    return bool(re.match(r"\d", text)) and not re.match(r"\d+:", text)


def parse_target_version(text: str) -> TargetVersion:
    """
    Parse '[<target>-]<version>[~<tag>]'.

    The target ends at the first '-' that is followed by a version starting
    with digits; without such a '-' the whole text is the version.

    Raises:
        ParseError: If no valid version can be found

    Example:
        >>> tv = parse_target_version("armv7-unknown-linux-gnueabihf-8.10.4")
        >>> tv.target, str(tv.version)
        ('armv7-unknown-linux-gnueabihf', '8.10.4')
    """
    tag = None
    if "~" in text:
        text, tag = text.split("~", 1)
        if not tag:
            raise ParseError(text + "~", "empty version tag")

    for index, char in enumerate(text):
        if index == 0 or char != "-":
            continue
        rest = text[index + 1 :]
        if _starts_with_plain_digits(rest):
            try:
                return TargetVersion(parse_version(rest), text[:index], tag)
            except ParseError:
                break

    return TargetVersion(parse_version(text), None, tag)


def pretty_target_version(target_version: TargetVersion) -> str:
    """Format a target version as used for installation directory names."""
    return str(target_version)


# ============================================================================
# Symlink target parsing
# ============================================================================


def parse_subdir_link(link: str, subdir: str = "ghc") -> TargetVersion:
    """
    Parse a link target of the form ``.../<subdir>/<target-version>/bin/...``.

    Raises:
        ParseError: If no ``<subdir>`` segment is followed by a parsable
            target version

    Example:
        >>> str(parse_subdir_link("../ghc/8.10.4/bin/ghc"))
        '8.10.4'
    """
    pattern = re.compile(rf"(?<=.){_SEP}{re.escape(subdir)}{_SEP}([^/\\]+)(?={_SEP})")
    for m in pattern.finditer(link):
        try:
            return parse_target_version(m.group(1))
        except ParseError:
            continue
    raise ParseError(link, f"not a link into a '{subdir}' installation directory")


def parse_ghc_link(link: str) -> TargetVersion:
    """Parse a compiler symlink target, e.g. '../ghc/8.10.4/bin/ghc'."""
    return parse_subdir_link(link, "ghc")


def parse_bin_link(prefix: str, link: str) -> Version:
    """
    Parse a link target of the form ``<prefix>-<version>``.

    Leading absolute or relative path components are tolerated; the longest
    strip that leaves a valid ``<prefix>-<version>`` wins. The prefix is
    matched case-sensitively and the executable suffix is dropped first.

    Raises:
        ParseError: If no strip yields a valid version

    Example:
        >>> parse_bin_link("cabal", "/home/u/.ghcup/bin/cabal-3.4.0.0")
        Version('3.4.0.0')
    """
    text = drop_exe_suffix(link)
    parts = re.split(_SEP, text)
    head = f"{prefix}-"

    for start in range(len(parts) - 1, -1, -1):
        candidate = "/".join(parts[start:])
        if not candidate.startswith(head):
            continue
        try:
            return parse_version(candidate[len(head) :])
        except ParseError:
            continue

    raise ParseError(link, f"expected '{head}<version>'")
