"""
Settings model — the fixed inputs of one install run.

Built once by ``bottler.core.config.loader.load_settings`` and passed
by reference to every component that needs it.  Nothing in the core
mutates it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

FORMULAE_URL = "https://formulae.brew.sh/api/formula.json"

# Anonymous bearer token accepted by the public bottle registry.
ANONYMOUS_TOKEN = "QQ=="


class Settings(BaseModel):
    """Configuration surface of the install core."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_root: Path
    data_dir: Path
    platform: str | None = None  # None → detect at startup

    max_concurrent_fetches: int = Field(16, ge=1)
    fetch_retries: int = Field(3, ge=0)

    formulae_url: str = FORMULAE_URL
    auth_token: str = ANONYMOUS_TOKEN
    http_timeout: float = Field(30.0, gt=0)
    chunk_size: int = Field(1 << 18, ge=1024)

    @property
    def downloads_dir(self) -> Path:
        return self.cache_root / "downloads"

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / "index.json"
