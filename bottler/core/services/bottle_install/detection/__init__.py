"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

Read-only probes of the running system.  Nothing here writes.
"""

from bottler.core.services.bottle_install.detection.platform import (  # noqa: F401
    PlatformInfo,
    detect_platform,
    macos_codename,
    platform_identifier,
    resolve_platform,
)
