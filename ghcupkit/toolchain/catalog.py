"""
Read-only queries over the version catalog.

The catalog maps each tool to its available versions and their metadata
(tags such as 'Latest' or 'Recommended', changelog link). It is supplied
already parsed; this module only looks things up, it never mutates it.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from ghcupkit.core.exceptions import ParseError
from ghcupkit.toolchain.tools import Tool
from ghcupkit.toolchain.version import (
    TargetVersion,
    Version,
    match_major_minor,
    parse_version,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Tag:
    """
    A label on a (tool, version) pair.

    ``base`` tags carry the version of the bundled base library as value.
    """

    name: str
    value: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Tag":
        """
        Parse a tag as written in the catalog.

        Example:
            >>> Tag.parse("base-4.14.1.0")
            Tag(name='base', value='4.14.1.0')
            >>> Tag.parse("Recommended") == RECOMMENDED
            True
        """
        if text.startswith("base-") and len(text) > len("base-"):
            return cls("base", text[len("base-") :])
        return cls(text.lower())

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.name}-{self.value}"
        return self.name


LATEST = Tag("latest")
RECOMMENDED = Tag("recommended")
PRERELEASE = Tag("prerelease")
OLD = Tag("old")


def base_tag(pvp: str) -> Tag:
    """Tag of the compiler versions that ship the given base library version."""
    return Tag("base", pvp)


@dataclass(frozen=True)
class VersionInfo:
    """Catalog metadata for one (tool, version) pair."""

    tags: FrozenSet[Tag] = frozenset()
    changelog: Optional[str] = None


VersionMap = Mapping[Version, VersionInfo]


class Catalog:
    """
    Immutable mapping ``Tool -> Version -> VersionInfo``.

    Example:
        >>> catalog = Catalog.from_mapping({"ghc": {"8.10.4": {"tags": ["Recommended"]}}})
        >>> tagged_version(catalog, Tool.GHC, RECOMMENDED)[0]
        Version('8.10.4')
    """

    def __init__(self, tools: Mapping[Tool, VersionMap]):
        self._tools = MappingProxyType(
            {tool: MappingProxyType(dict(versions)) for tool, versions in tools.items()}
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping[str, Any]]) -> "Catalog":
        """
        Build a catalog from an already parsed document.

        The document maps catalog tool keys ('ghc', 'cabal', 'hls', 'stack')
        to version strings, each with optional 'tags' and 'changelog'.

        Raises:
            ValueError: If a tool key is unknown
            ParseError: If a version string is invalid
        """
        tools: Dict[Tool, Dict[Version, VersionInfo]] = {}
        for key, versions in data.items():
            tool = Tool.from_catalog_key(key)
            entries: Dict[Version, VersionInfo] = {}
            for version_text, info in (versions or {}).items():
                info = info or {}
                entries[parse_version(str(version_text))] = VersionInfo(
                    tags=frozenset(Tag.parse(str(t)) for t in info.get("tags", [])),
                    changelog=info.get("changelog"),
                )
            tools[tool] = entries
        return cls(tools)

    def versions(self, tool: Tool) -> VersionMap:
        """All catalog entries of a tool (empty if the tool is absent)."""
        return self._tools.get(tool, MappingProxyType({}))

    def tools(self) -> List[Tool]:
        return list(self._tools)


# ============================================================================
# Generic composable lookups
# ============================================================================


def get(catalog: Catalog, tool: Tool, version: Version) -> Optional[VersionInfo]:
    """Metadata of one version, if present."""
    return catalog.versions(tool).get(version)


def filter_versions(
    catalog: Catalog,
    tool: Tool,
    predicate: Callable[[Version, VersionInfo], bool],
) -> List[Tuple[Version, VersionInfo]]:
    """Entries of a tool satisfying predicate, in ascending version order."""
    return sorted(
        ((v, info) for v, info in catalog.versions(tool).items() if predicate(v, info)),
        key=lambda entry: entry[0],
    )


def max_by(items: Iterable[T], key: Callable[[T], Any]) -> Optional[T]:
    """Greatest item by key, or None for an empty iterable."""
    return max(items, key=key, default=None)


# ============================================================================
# Tags
# ============================================================================


def tagged_version(
    catalog: Catalog, tool: Tool, tag: Tag
) -> Optional[Tuple[Version, VersionInfo]]:
    """The greatest version of a tool carrying tag, if any."""
    return max_by(
        filter_versions(catalog, tool, lambda _, info: tag in info.tags),
        key=lambda entry: entry[0],
    )


def latest(catalog: Catalog, tool: Tool) -> Optional[Tuple[Version, VersionInfo]]:
    return tagged_version(catalog, tool, LATEST)


def recommended(catalog: Catalog, tool: Tool) -> Optional[Tuple[Version, VersionInfo]]:
    return tagged_version(catalog, tool, RECOMMENDED)


def latest_base_version(
    catalog: Catalog, pvp: str
) -> Optional[Tuple[Version, VersionInfo]]:
    """The latest compiler shipping base library version pvp."""
    return tagged_version(catalog, Tool.GHC, base_tag(pvp))


def changelog(
    catalog: Catalog, tool: Tool, version_or_tag: Union[Version, Tag]
) -> Optional[str]:
    """Changelog link of a version, or of the version carrying a tag."""
    if isinstance(version_or_tag, Tag):
        entry = tagged_version(catalog, tool, version_or_tag)
        return entry[1].changelog if entry else None
    info = get(catalog, tool, version_or_tag)
    return info.changelog if info else None


def resolve_version_or_tag(
    catalog: Catalog, tool: Tool, text: str
) -> Optional[Tuple[Version, VersionInfo]]:
    """
    Resolve user input that is either a version or a tag name.

    A parsable version that is in the catalog wins over a tag of that name.
    """
    try:
        version = parse_version(text)
    except ParseError:
        version = None

    if version is not None:
        info = get(catalog, tool, version)
        if info is not None:
            return version, info

    return tagged_version(catalog, tool, Tag.parse(text))


# ============================================================================
# Major version (X.Y) lookups
# ============================================================================


def latest_for_major_minor(
    catalog: Catalog, tool: Tool, major: int, minor: int
) -> Optional[Tuple[Version, VersionInfo]]:
    """
    The greatest available version of a tool matching major.minor.

    Versions whose first chunk is not a single integer, or whose second
    chunk does not start with one, never match.
    """
    return max_by(
        filter_versions(
            catalog, tool, lambda v, _: match_major_minor(v, major, minor)
        ),
        key=lambda entry: entry[0],
    )


def latest_installed_for_major_minor(
    installed: Iterable[TargetVersion],
    major: int,
    minor: int,
    target: Optional[str] = None,
) -> Optional[TargetVersion]:
    """
    The greatest installed version matching major.minor and exactly target.

    Example:
        >>> installed = [parse_target_version("8.10.4"), parse_target_version("9.0.1")]
        >>> str(latest_installed_for_major_minor(installed, 8, 10))
        '8.10.4'
    """
    return max_by(
        (
            tv
            for tv in installed
            if tv.target == target and match_major_minor(tv.version, major, minor)
        ),
        key=lambda tv: tv.version,
    )
