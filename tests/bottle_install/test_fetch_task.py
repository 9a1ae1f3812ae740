"""
Tests for the per-package fetch task — cache, resume and retry policy.
"""

import threading
import urllib.error

import pytest

from bottler.core.errors import (
    ContentLengthMissingError,
    DownloadCorruptedError,
    FetchCancelledError,
    NetworkError,
    UnavailableForPlatformError,
)
from bottler.core.observability.progress import TaskReporter
from bottler.core.services.bottle_install.execution import ArtifactCache, BottleFetcher

from conftest import PLATFORM, make_record


@pytest.fixture
def fetcher(settings, bottle_server) -> BottleFetcher:
    return BottleFetcher(settings, opener=bottle_server)


@pytest.fixture
def record(bottle_server, tarball):
    rec = make_record("wget", body=tarball, version="1.24.5")
    bottle_server.add(rec.bottles[PLATFORM].url, tarball)
    return rec


def _entry(fetcher, record):
    bottle = record.bottle_for(PLATFORM)
    return fetcher.cache.entry(record, PLATFORM, bottle)


class TestBottleLookup:
    def test_unavailable_platform(self, fetcher, record, bottle_server):
        with pytest.raises(UnavailableForPlatformError) as exc_info:
            fetcher.fetch(record, "x86_64_linux")
        assert exc_info.value.name == "wget"
        assert exc_info.value.platform == "x86_64_linux"
        assert bottle_server.requests == []


class TestCache:
    def test_download_then_cache_hit(self, fetcher, record, bottle_server, tarball):
        path = fetcher.fetch(record, PLATFORM)
        assert path.read_bytes() == tarball
        assert path.parent == fetcher.settings.downloads_dir
        assert not _entry(fetcher, record).incomplete_path.exists()

        again = fetcher.fetch(record, PLATFORM)
        assert again == path
        assert len(bottle_server.requests) == 1

    def test_cache_hit_reports_no_network(self, fetcher, record, bottle_server, sink):
        fetcher.fetch(record, PLATFORM)
        sink.events.clear()
        fetcher.fetch(record, PLATFORM, reporter=TaskReporter(sink, "wget"))
        assert sink.phases("wget") == ["searching-cache"]

    def test_corrupt_cache_is_refetched(self, fetcher, record, bottle_server, tarball):
        path = fetcher.fetch(record, PLATFORM)
        data = bytearray(path.read_bytes())
        data[10] ^= 0x01
        path.write_bytes(bytes(data))

        assert fetcher.fetch(record, PLATFORM).read_bytes() == tarball
        assert len(bottle_server.requests) == 2

    def test_uses_given_cache(self, settings, bottle_server, record, tmp_path):
        cache = ArtifactCache(tmp_path / "elsewhere")
        path = BottleFetcher(settings, cache=cache, opener=bottle_server).fetch(record, PLATFORM)
        assert path.parent == tmp_path / "elsewhere"


class TestResumeAndRetry:
    def test_first_attempt_resumes_partial(self, fetcher, record, bottle_server, tarball):
        entry = _entry(fetcher, record)
        entry.incomplete_path.parent.mkdir(parents=True)
        entry.incomplete_path.write_bytes(tarball[:50])

        fetcher.fetch(record, PLATFORM)
        assert bottle_server.requests[0].get_header("Range") == "bytes=50-"
        assert entry.path.read_bytes() == tarball

    def test_retries_are_fresh(self, fetcher, record, bottle_server, tarball):
        bottle_server.cut_next(40)
        bottle_server.corrupt_next()

        path = fetcher.fetch(record, PLATFORM)
        assert path.read_bytes() == tarball
        ranges = [r.get_header("Range") for r in bottle_server.requests]
        # resume attempt, then fresh attempts only
        assert ranges == [None, None, None]

    def test_transient_failure_recovers(self, fetcher, record, bottle_server, sink):
        bottle_server.fail_next(urllib.error.URLError("temporary failure"))
        reporter = TaskReporter(sink, "wget")
        fetcher.fetch(record, PLATFORM, reporter=reporter)
        assert "retrying" in sink.phases("wget")

    @pytest.mark.parametrize("retries", [0, 1, 3])
    def test_attempt_budget(self, settings, bottle_server, record, retries):
        fetcher = BottleFetcher(
            settings.model_copy(update={"fetch_retries": retries}), opener=bottle_server,
        )
        for _ in range(retries + 5):
            bottle_server.fail_next(urllib.error.URLError("down"))

        with pytest.raises(NetworkError):
            fetcher.fetch(record, PLATFORM)
        assert len(bottle_server.requests) == 1 + retries

    def test_without_retries_first_error_is_final(self, settings, bottle_server, record, sink):
        fetcher = BottleFetcher(
            settings.model_copy(update={"fetch_retries": 0}), opener=bottle_server,
        )
        bottle_server.fail_next(urllib.error.URLError("down"))
        reporter = TaskReporter(sink, record.name, record.version_fmt)

        with pytest.raises(NetworkError, match="down"):
            fetcher.fetch(record, PLATFORM, reporter=reporter)
        assert len(bottle_server.requests) == 1
        assert "retrying" not in sink.phases("wget")

    def test_last_error_propagates(self, fetcher, record, bottle_server):
        bottle_server.fail_next(urllib.error.URLError("down"))
        bottle_server.corrupt_next()
        bottle_server.omit_length_next()
        with pytest.raises(ContentLengthMissingError):
            fetcher.fetch(record, PLATFORM)

    def test_corrupted_every_time(self, fetcher, record, bottle_server):
        for _ in range(3):
            bottle_server.corrupt_next()
        with pytest.raises(DownloadCorruptedError):
            fetcher.fetch(record, PLATFORM)
        assert not _entry(fetcher, record).path.exists()


class TestCancellation:
    def test_cancel_is_not_retried(self, fetcher, record, bottle_server):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(FetchCancelledError):
            fetcher.fetch(record, PLATFORM, cancel=cancel)
        assert bottle_server.requests == []
