"""
L4 Execution — Local artifact cache.

Content-keyed store of downloaded bottles under
``<cache_root>/downloads``.  A key's file is *complete* only after its
checksum was verified and the ``.incomplete`` sibling was renamed onto
it; ``promote()`` is the one place that happens.

Each key is touched by exactly one fetch task, so no locking is needed.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from bottler.core.errors import CacheIOError
from bottler.core.models.formula import BottleRef, PackageRecord
from bottler.core.services.bottle_install.domain.cache_keys import cache_key, incomplete_name

logger = logging.getLogger(__name__)

_HASH_BLOCK = 1 << 20


@dataclass(frozen=True)
class CacheEntry:
    """Paths belonging to one cache key."""

    key: str
    path: Path
    incomplete_path: Path


def file_sha256(path: Path) -> str:
    """Hex SHA-256 of a whole file."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(_HASH_BLOCK), b""):
                h.update(block)
    except OSError as e:
        raise CacheIOError(f"cannot read cached file ({e.strerror or e})", path=path) from e
    return h.hexdigest()


class ArtifactCache:
    """Directory of verified bottles and their in-progress siblings."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(f"cannot create cache directory ({e.strerror or e})", path=self.root) from e

    def entry(self, record: PackageRecord, platform: str, bottle: BottleRef) -> CacheEntry:
        key = cache_key(record, platform, bottle.url)
        return CacheEntry(
            key=key,
            path=self.root / key,
            incomplete_path=self.root / incomplete_name(key),
        )

    def lookup(self, entry: CacheEntry, expected_sha256: str) -> Path | None:
        """Return the complete file if present and intact.

        A complete file whose digest no longer matches is deleted so the
        caller can fetch it again.
        """
        if not entry.path.is_file():
            return None

        actual = file_sha256(entry.path)
        if actual == expected_sha256.lower():
            logger.debug("Cache hit for %s", entry.key)
            return entry.path

        logger.warning(
            "Cached bottle %s is corrupt (sha256 %s, expected %s), removing it",
            entry.path.name, actual, expected_sha256,
        )
        self.discard(entry.path)
        return None

    def promote(self, entry: CacheEntry) -> Path:
        """Atomically turn the verified in-progress file into the complete one."""
        try:
            os.replace(entry.incomplete_path, entry.path)
        except OSError as e:
            raise CacheIOError(f"cannot promote download ({e.strerror or e})", path=entry.path) from e
        logger.debug("Promoted %s", entry.key)
        return entry.path

    def discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheIOError(f"cannot delete cached file ({e.strerror or e})", path=path) from e
