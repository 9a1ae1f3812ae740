"""
L4 Execution — Resumable bottle download.

Streams one bottle into its ``.incomplete`` cache file while hashing
it, then checks the digest.  Promotion to the complete cache path is
the caller's job and happens only after this returns.
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import threading
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path
from typing import Any

from bottler import __version__
from bottler.core.errors import (
    CacheIOError,
    ContentLengthMissingError,
    DownloadCorruptedError,
    FetchCancelledError,
    NetworkError,
)
from bottler.core.models.settings import ANONYMOUS_TOKEN
from bottler.core.observability.progress import NullSink, Phase, TaskReporter
from bottler.core.services.bottle_install.domain.download_helpers import _fmt_size

logger = logging.getLogger(__name__)

Opener = Callable[..., Any]

_HTTP_PARTIAL_CONTENT = 206
_HASH_BLOCK = 1 << 20


def _prepare_file(dest: Path, resume: bool) -> int:
    """Create or truncate *dest*; return the resume offset."""
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        if resume and dest.is_file():
            return dest.stat().st_size
        with open(dest, "wb"):
            pass
    except OSError as e:
        raise CacheIOError(f"cannot prepare download file ({e.strerror or e})", path=dest) from e
    return 0


def _seed_hasher(dest: Path, length: int) -> Any:
    """Hash the first *length* bytes already on disk."""
    h = hashlib.sha256()
    remaining = length
    try:
        with open(dest, "rb") as f:
            while remaining > 0:
                block = f.read(min(_HASH_BLOCK, remaining))
                if not block:
                    break
                h.update(block)
                remaining -= len(block)
    except OSError as e:
        raise CacheIOError(f"cannot read partial download ({e.strerror or e})", path=dest) from e
    return h


def _check_cancel(cancel: threading.Event | None, package: str) -> None:
    if cancel is not None and cancel.is_set():
        raise FetchCancelledError(package)


def download_to_file(
    url: str,
    dest: Path,
    *,
    expected_sha256: str,
    resume: bool = False,
    auth_token: str = ANONYMOUS_TOKEN,
    timeout: float = 30.0,
    chunk_size: int = 1 << 18,
    reporter: TaskReporter | None = None,
    cancel: threading.Event | None = None,
    opener: Opener | None = None,
) -> int:
    """Download *url* into *dest* and verify it.

    With ``resume`` the bytes already in *dest* are kept, fed to the
    hasher, and the request asks for the rest with a ``Range`` header.
    Without it *dest* is truncated first.  A server that ignores the
    range (answers 200) is handled by starting over from byte zero.

    On any early stop the file is truncated to the bytes actually
    written, so its length is always a valid resume offset.

    Returns:
        Total size of the verified file in bytes.

    Raises:
        NetworkError: Connection, HTTP status or short-body failure.
        ContentLengthMissingError: Response without Content-Length.
        CacheIOError: *dest* cannot be read or written.
        DownloadCorruptedError: Digest mismatch after a full transfer.
        FetchCancelledError: *cancel* was set mid-transfer.
    """
    opener = opener or urllib.request.urlopen
    reporter = reporter or TaskReporter(NullSink(), dest.name)

    _check_cancel(cancel, reporter.package)
    offset = _prepare_file(dest, resume)
    hasher = _seed_hasher(dest, offset) if offset else hashlib.sha256()

    headers = {
        "User-Agent": f"bottler/{__version__}",
        "Authorization": f"Bearer {auth_token}",
    }
    if offset:
        headers["Range"] = f"bytes={offset}-"
        reporter.phase(Phase.RESUMING, f"from {_fmt_size(offset)}")
    request = urllib.request.Request(url, headers=headers)

    try:
        response = opener(request, timeout=timeout)
    except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
        raise NetworkError(f"request failed: {e}", url=url) from e

    with response as resp:
        status = getattr(resp, "status", 200)
        if offset and status != _HTTP_PARTIAL_CONTENT:
            logger.info("Server ignored range request for %s (HTTP %s), restarting", url, status)
            offset = 0
            hasher = hashlib.sha256()

        length = resp.headers.get("Content-Length")
        if length is None or not length.strip().isdigit():
            raise ContentLengthMissingError(url)
        total = offset + int(length)

        reporter.phase(Phase.DOWNLOADING, total=total)
        if offset:
            reporter.set_position(offset)

        _stream_body(
            resp, dest,
            url=url, offset=offset, total=total, hasher=hasher,
            chunk_size=chunk_size, reporter=reporter, cancel=cancel,
        )

    reporter.phase(Phase.VERIFYING)
    actual = hasher.hexdigest()
    if actual != expected_sha256.lower():
        raise DownloadCorruptedError(url, expected=expected_sha256, actual=actual)

    logger.debug("Downloaded %s (%s) to %s", url, _fmt_size(total), dest)
    return total


def _stream_body(
    resp: Any,
    dest: Path,
    *,
    url: str,
    offset: int,
    total: int,
    hasher: Any,
    chunk_size: int,
    reporter: TaskReporter,
    cancel: threading.Event | None,
) -> None:
    try:
        f = open(dest, "r+b")
    except OSError as e:
        raise CacheIOError(f"cannot open download file ({e.strerror or e})", path=dest) from e

    with f:
        position = offset
        try:
            try:
                f.truncate(total)
                f.seek(offset)
            except OSError as e:
                raise CacheIOError(f"cannot allocate download file ({e.strerror or e})", path=dest) from e

            while position < total:
                _check_cancel(cancel, reporter.package)
                try:
                    chunk = resp.read(min(chunk_size, total - position))
                except (http.client.HTTPException, OSError) as e:
                    raise NetworkError(f"transfer interrupted: {e}", url=url) from e
                if not chunk:
                    raise NetworkError(
                        f"connection closed after {position} of {total} bytes", url=url,
                    )
                try:
                    f.write(chunk)
                except OSError as e:
                    raise CacheIOError(f"cannot write download ({e.strerror or e})", path=dest) from e
                hasher.update(chunk)
                position += len(chunk)
                reporter.advance(len(chunk))
        finally:
            if position != total:
                try:
                    f.truncate(position)
                except OSError as e:
                    logger.warning("Could not trim partial download %s to %d bytes: %s", dest, position, e)
