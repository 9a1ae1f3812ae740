"""
Tests for platform detection — bottle platform identifiers.
"""

import pytest

from bottler.core.errors import UnsupportedPlatformError
from bottler.core.models.settings import Settings
from bottler.core.services.bottle_install.detection import (
    PlatformInfo,
    detect_platform,
    macos_codename,
    platform_identifier,
    resolve_platform,
)
from bottler.core.services.bottle_install.detection import platform as platform_mod


class TestMacosCodename:
    @pytest.mark.parametrize("version,expected", [
        ("15.1", "sequoia"),
        ("14.5", "sonoma"),
        ("13.0", "ventura"),
        ("11.7.10", "big_sur"),
        ("10.15.7", "catalina"),
        ("10.13", "high_sierra"),
        ("26.0", "tahoe"),
    ])
    def test_known(self, version, expected):
        assert macos_codename(version) == expected

    def test_unknown_major(self):
        with pytest.raises(UnsupportedPlatformError):
            macos_codename("99.0")

    def test_garbage(self):
        with pytest.raises(UnsupportedPlatformError):
            macos_codename("sonoma")


class TestPlatformIdentifier:
    def test_apple_silicon_prefix(self):
        assert platform_identifier("Darwin", "arm64", "14.4") == "arm64_sonoma"

    def test_intel_mac_has_no_prefix(self):
        assert platform_identifier("Darwin", "x86_64", "13.6") == "ventura"

    def test_linux(self):
        assert platform_identifier("Linux", "x86_64") == "x86_64_linux"
        assert platform_identifier("Linux", "aarch64") == "arm64_linux"

    def test_unsupported_os(self):
        with pytest.raises(UnsupportedPlatformError):
            platform_identifier("Windows", "AMD64")

    def test_unsupported_arch(self):
        with pytest.raises(UnsupportedPlatformError):
            platform_identifier("Linux", "riscv64")


class TestDetect:
    def test_detect_uses_platform_module(self, monkeypatch):
        monkeypatch.setattr(platform_mod.platform, "system", lambda: "Darwin")
        monkeypatch.setattr(platform_mod.platform, "machine", lambda: "arm64")
        monkeypatch.setattr(platform_mod.platform, "mac_ver", lambda: ("15.0", ("", "", ""), "arm64"))
        info = detect_platform()
        assert info == PlatformInfo(identifier="arm64_sequoia", os_name="Darwin", arch="arm64")
        assert str(info) == "arm64_sequoia"

    def test_settings_override_skips_detection(self, tmp_path, monkeypatch):
        monkeypatch.setattr(platform_mod.platform, "system", lambda: "Plan9")
        settings = Settings(cache_root=tmp_path, data_dir=tmp_path, platform="ventura")
        assert resolve_platform(settings).identifier == "ventura"

    def test_no_override_detects(self, tmp_path, monkeypatch):
        monkeypatch.setattr(platform_mod.platform, "system", lambda: "Linux")
        monkeypatch.setattr(platform_mod.platform, "machine", lambda: "x86_64")
        settings = Settings(cache_root=tmp_path, data_dir=tmp_path)
        assert resolve_platform(settings).identifier == "x86_64_linux"
