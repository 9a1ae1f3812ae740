"""
L3 Detection — Bottle platform identifier.

Read-only probe mapping the running system to the platform key used in
the index's ``bottle.stable.files`` table (``arm64_sonoma``,
``ventura``, ``x86_64_linux``, ...).
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass

from bottler.core.errors import UnsupportedPlatformError
from bottler.core.models.settings import Settings

logger = logging.getLogger(__name__)

# macOS product version → release codename used in bottle tags.
# Since macOS 11 the major version alone identifies the release.
_MACOS_MAJOR = {
    26: "tahoe",
    15: "sequoia",
    14: "sonoma",
    13: "ventura",
    12: "monterey",
    11: "big_sur",
}
_MACOS_10_MINOR = {
    15: "catalina",
    14: "mojave",
    13: "high_sierra",
    12: "sierra",
    11: "el_capitan",
    10: "yosemite",
}

_ARCH_ALIASES = {
    "arm64": "arm64",
    "aarch64": "arm64",
    "x86_64": "x86_64",
    "amd64": "x86_64",
}


@dataclass(frozen=True)
class PlatformInfo:
    """Resolved platform for one run."""

    identifier: str
    os_name: str = ""
    arch: str = ""

    def __str__(self) -> str:
        return self.identifier


def _normalize_arch(machine: str) -> str:
    arch = _ARCH_ALIASES.get(machine.lower())
    if arch is None:
        raise UnsupportedPlatformError(f"Unsupported CPU architecture: {machine!r}")
    return arch


def macos_codename(version: str) -> str:
    """Map a macOS product version (``"14.5"``) to its codename."""
    parts = version.split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        raise UnsupportedPlatformError(f"Unparseable macOS version: {version!r}") from None

    name = _MACOS_10_MINOR.get(minor) if major == 10 else _MACOS_MAJOR.get(major)
    if name is None:
        raise UnsupportedPlatformError(f"Unsupported macOS version: {version}")
    return name


def platform_identifier(system: str, machine: str, mac_version: str = "") -> str:
    """Build the bottle platform key from raw system facts (pure)."""
    arch = _normalize_arch(machine)
    if system == "Darwin":
        codename = macos_codename(mac_version)
        return f"arm64_{codename}" if arch == "arm64" else codename
    if system == "Linux":
        return f"{arch}_linux"
    raise UnsupportedPlatformError(f"Unsupported operating system: {system!r}")


def detect_platform() -> PlatformInfo:
    """Probe the running system.

    Raises:
        UnsupportedPlatformError: OS, version or architecture has no
            bottle platform.
    """
    system = platform.system()
    machine = platform.machine()
    mac_version = platform.mac_ver()[0] if system == "Darwin" else ""

    identifier = platform_identifier(system, machine, mac_version)
    logger.debug("Detected platform %s (%s %s %s)", identifier, system, mac_version, machine)
    return PlatformInfo(identifier=identifier, os_name=system, arch=_normalize_arch(machine))


def resolve_platform(settings: Settings) -> PlatformInfo:
    """Use the configured platform override, or detect one."""
    if settings.platform:
        logger.debug("Using configured platform %s", settings.platform)
        return PlatformInfo(identifier=settings.platform)
    return detect_platform()
