"""
L4 Execution — Per-package fetch task.

Turns one ``PackageRecord`` into a verified bottle in the local cache:

    bottle lookup → cache hit check → resume attempt → fresh retries → promote

Retryable failures never leave this module until the attempt budget is
spent; they show up as ``retrying`` progress events and log lines.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from bottler.core.errors import (
    CacheIOError,
    ContentLengthMissingError,
    DownloadCorruptedError,
    FetchCancelledError,
    NetworkError,
)
from bottler.core.models.formula import PackageRecord
from bottler.core.models.settings import Settings
from bottler.core.observability.progress import NullSink, Phase, TaskReporter
from bottler.core.services.bottle_install.execution.artifact_cache import ArtifactCache
from bottler.core.services.bottle_install.execution.download import Opener, download_to_file

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    NetworkError,
    ContentLengthMissingError,
    DownloadCorruptedError,
    CacheIOError,
)


class BottleFetcher:
    """Fetches bottles into an ``ArtifactCache`` with resume and retry.

    One instance is shared by all workers of a run; it holds no
    per-package state.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: ArtifactCache | None = None,
        opener: Opener | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache or ArtifactCache(settings.downloads_dir)
        self.opener = opener

    @property
    def max_attempts(self) -> int:
        return 1 + self.settings.fetch_retries

    def fetch(
        self,
        record: PackageRecord,
        platform: str,
        *,
        reporter: TaskReporter | None = None,
        cancel: threading.Event | None = None,
    ) -> Path:
        """Return the path of a verified bottle for *record*.

        Raises:
            UnavailableForPlatformError: No bottle for *platform*.
            FetchCancelledError: *cancel* was set.
            NetworkError, ContentLengthMissingError, DownloadCorruptedError,
            CacheIOError: The last attempt's error once all attempts failed.
        """
        reporter = reporter or TaskReporter(NullSink(), record.name, record.version_fmt)
        bottle = record.bottle_for(platform)

        reporter.phase(Phase.SEARCHING_CACHE)
        self.cache.ensure_root()
        entry = self.cache.entry(record, platform, bottle)

        cached = self.cache.lookup(entry, bottle.sha256)
        if cached is not None:
            reporter.phase(Phase.SEARCHING_CACHE, "cache hit")
            return cached

        attempts = self.max_attempts
        attempt = 0
        last_error: Exception | None = None

        while True:
            attempt += 1
            if cancel is not None and cancel.is_set():
                raise FetchCancelledError(record.name)

            if last_error is not None:
                logger.info(
                    "Retrying %s (attempt %d/%d) after: %s",
                    record.name, attempt, attempts, last_error,
                )
                reporter.phase(Phase.RETRYING, f"attempt {attempt}/{attempts}: {last_error}")

            try:
                download_to_file(
                    bottle.url,
                    entry.incomplete_path,
                    expected_sha256=bottle.sha256,
                    resume=attempt == 1,
                    auth_token=self.settings.auth_token,
                    timeout=self.settings.http_timeout,
                    chunk_size=self.settings.chunk_size,
                    reporter=reporter,
                    cancel=cancel,
                    opener=self.opener,
                )
            except RETRYABLE_ERRORS as e:
                logger.warning(
                    "Fetching %s failed (attempt %d/%d): %s", record.name, attempt, attempts, e,
                )
                if attempt >= attempts:
                    raise
                last_error = e
                continue

            return self.cache.promote(entry)
