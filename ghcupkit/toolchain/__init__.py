"""
Toolchain management module for ghcupkit.

This module provides functionality for:
- Version and target parsing, formatting and ordering
- Catalog queries (tagged, latest, major.minor lookups)
- Installed-set introspection
- Active-version symlink switching
- Build orchestration with guaranteed cleanup
"""

from ghcupkit.toolchain.version import (
    TargetVersion,
    Version,
    major_minor,
    match_major_minor,
    parse_bin_link,
    parse_ghc_link,
    parse_subdir_link,
    parse_target_version,
    parse_version,
    pretty_target_version,
    pretty_version,
)
from ghcupkit.toolchain.tools import (
    BUILD_TOOL,
    COMPILER,
    LANGUAGE_SERVER,
    PROJECT_TOOL,
    Tool,
)
from ghcupkit.toolchain.catalog import (
    LATEST,
    OLD,
    PRERELEASE,
    RECOMMENDED,
    Catalog,
    Tag,
    VersionInfo,
    base_tag,
    changelog,
    filter_versions,
    get,
    latest,
    latest_base_version,
    latest_for_major_minor,
    latest_installed_for_major_minor,
    max_by,
    recommended,
    resolve_version_or_tag,
    tagged_version,
)
from ghcupkit.toolchain.installed import (
    InstalledEntry,
    InstalledScanner,
    find_files,
    parsed_versions,
)
from ghcupkit.toolchain.linking import SetMode, SymlinkSwitcher
from ghcupkit.toolchain.build import (
    BuildRunner,
    apply_patches,
    build_scope,
    list_patches,
    run_build_action,
)

__all__ = [
    # Versions
    "Version",
    "TargetVersion",
    "parse_version",
    "parse_target_version",
    "pretty_version",
    "pretty_target_version",
    "major_minor",
    "match_major_minor",
    "parse_ghc_link",
    "parse_subdir_link",
    "parse_bin_link",
    # Tools
    "Tool",
    "COMPILER",
    "BUILD_TOOL",
    "LANGUAGE_SERVER",
    "PROJECT_TOOL",
    # Catalog
    "Catalog",
    "Tag",
    "VersionInfo",
    "LATEST",
    "RECOMMENDED",
    "PRERELEASE",
    "OLD",
    "base_tag",
    "get",
    "filter_versions",
    "max_by",
    "tagged_version",
    "latest",
    "recommended",
    "latest_base_version",
    "changelog",
    "resolve_version_or_tag",
    "latest_for_major_minor",
    "latest_installed_for_major_minor",
    # Installed
    "InstalledEntry",
    "InstalledScanner",
    "find_files",
    "parsed_versions",
    # Linking
    "SetMode",
    "SymlinkSwitcher",
    # Build
    "BuildRunner",
    "build_scope",
    "run_build_action",
    "apply_patches",
    "list_patches",
]
