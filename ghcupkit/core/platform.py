"""
Host platform facts needed by the installation engine.

Only what the engine consumes lives here: the operating system family,
the CPU architecture and the executable suffix.
"""

import logging
import os
import platform as _platform
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

# File extension for executables
EXE_EXT = ".exe" if IS_WINDOWS else ""


@dataclass(frozen=True)
class PlatformInfo:
    """Operating system and architecture of a host."""

    os: str  # 'linux', 'macos', 'windows', 'freebsd'
    arch: str  # 'x64', 'arm64', 'x86', ...

    def platform_string(self) -> str:
        """Return the '<os>-<arch>' identifier, e.g. 'linux-x64'."""
        return f"{self.os}-{self.arch}"


_OS_NAMES = {
    "linux": "linux",
    "darwin": "macos",
    "windows": "windows",
    "freebsd": "freebsd",
}

_ARCH_NAMES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "x86",
    "i686": "x86",
    "armv7l": "arm",
}


@lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect the current platform.

    Returns:
        PlatformInfo for the running host

    Example:
        >>> detect_platform()
        PlatformInfo(os='linux', arch='x64')
    """
    system = _platform.system().lower()
    machine = _platform.machine().lower()

    info = PlatformInfo(
        os=_OS_NAMES.get(system, system),
        arch=_ARCH_NAMES.get(machine, machine),
    )
    logger.debug(f"Detected platform: {info.platform_string()}")
    return info


def drop_exe_suffix(name: str) -> str:
    """Strip the platform executable suffix from a file name, if present."""
    if EXE_EXT and name.endswith(EXE_EXT):
        return name[: -len(EXE_EXT)]
    return name
