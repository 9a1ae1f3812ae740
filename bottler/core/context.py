"""
Install context — the fixed inputs of one run, passed explicitly.

Built once by the entry point (CLI or test) after settings are loaded
and the platform is resolved:

    - CLI:    ui/cli/install.py → InstallContext.create(settings, sink=renderer)
    - Tests:  InstallContext(settings, PlatformInfo("arm64_sonoma"))

Every worker receives the same instance; nothing mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bottler.core.models.settings import Settings
from bottler.core.observability.progress import NullSink, ProgressSink
from bottler.core.services.bottle_install.detection.platform import PlatformInfo, resolve_platform


@dataclass(frozen=True)
class InstallContext:
    settings: Settings
    platform: PlatformInfo
    sink: ProgressSink = field(default_factory=NullSink)

    @classmethod
    def create(cls, settings: Settings, *, sink: ProgressSink | None = None) -> InstallContext:
        """Resolve the platform for *settings* and bundle everything."""
        return cls(settings=settings, platform=resolve_platform(settings), sink=sink or NullSink())
