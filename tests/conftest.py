"""
Shared test fixtures and configuration.

No test touches the real network: every HTTP call goes through
``FakeBottleServer``, which has the call shape of
``urllib.request.urlopen``.
"""

from __future__ import annotations

import gzip
import hashlib
import io
import tarfile
import threading
import urllib.error
from collections import deque
from pathlib import Path

import pytest

from bottler.core.models.formula import BottleRef, PackageRecord, Repository
from bottler.core.models.settings import Settings
from bottler.core.observability.progress import ProgressEvent, TaskEvent

PLATFORM = "arm64_sonoma"


# ── Fake HTTP ───────────────────────────────────────────────────


class FakeResponse:
    """Minimal stand-in for an ``http.client.HTTPResponse``."""

    def __init__(self, body: bytes, *, status: int = 200, headers: dict | None = None,
                 cut_after: int | None = None) -> None:
        self._buf = io.BytesIO(body)
        self.status = status
        self.headers = headers or {}
        self._cut_after = cut_after

    def read(self, n: int = -1) -> bytes:
        if self._cut_after is not None:
            left = self._cut_after - self._buf.tell()
            if left <= 0:
                raise ConnectionResetError("connection reset by peer")
            n = left if n < 0 else min(n, left)
        return self._buf.read(n)

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


class FakeBottleServer:
    """In-memory bottle host, callable like ``urlopen(request, timeout=...)``.

    Scripted faults are consumed one per request, in order:

    - ``fail_next(exc)``     raise *exc* when the request is opened
    - ``cut_next(n)``        reset the connection after *n* body bytes
    - ``corrupt_next()``     flip the first body byte
    - ``omit_length_next()`` answer without Content-Length
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.requests: list = []
        self.honor_range = True
        self._faults: deque[tuple[str, object]] = deque()
        self._lock = threading.Lock()

    def add(self, url: str, body: bytes) -> None:
        self.files[url] = body

    def fail_next(self, exc: BaseException) -> None:
        self._faults.append(("raise", exc))

    def cut_next(self, after: int) -> None:
        self._faults.append(("cut", after))

    def corrupt_next(self) -> None:
        self._faults.append(("corrupt", None))

    def omit_length_next(self) -> None:
        self._faults.append(("no-length", None))

    def requests_for(self, url: str) -> list:
        return [r for r in self.requests if r.full_url == url]

    def __call__(self, request, timeout=None) -> FakeResponse:
        with self._lock:
            self.requests.append(request)
            fault = self._faults.popleft() if self._faults else (None, None)

        kind, arg = fault
        if kind == "raise":
            raise arg

        url = request.full_url
        if url not in self.files:
            raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)
        body = self.files[url]

        status, start = 200, 0
        range_header = request.get_header("Range")
        if range_header and self.honor_range:
            start = int(range_header.removeprefix("bytes=").rstrip("-"))
            status = 206
        payload = body[start:]

        if kind == "corrupt" and payload:
            payload = bytes([payload[0] ^ 0xFF]) + payload[1:]

        headers = {} if kind == "no-length" else {"Content-Length": str(len(payload))}
        cut = arg if kind == "cut" else None
        return FakeResponse(payload, status=status, headers=headers, cut_after=cut)


@pytest.fixture
def bottle_server() -> FakeBottleServer:
    return FakeBottleServer()


# ── Recording sink ──────────────────────────────────────────────


class RecordingSink:
    """Progress sink keeping every event."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: ProgressEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, cls: type) -> list:
        return [e for e in self.events if isinstance(e, cls)]

    def phases(self, package: str) -> list[str]:
        """Distinct consecutive phases seen for *package*."""
        seen: list[str] = []
        for e in self.events:
            if isinstance(e, TaskEvent) and e.package == package:
                if not seen or seen[-1] != e.phase:
                    seen.append(str(e.phase))
        return seen


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


# ── Builders ────────────────────────────────────────────────────


def build_tarball(files: dict[str, bytes]) -> bytes:
    """gzip-compressed tar holding *files* (name → content), byte-for-byte reproducible."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return gzip.compress(buf.getvalue(), mtime=0)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def bottle_url(name: str, platform: str = PLATFORM) -> str:
    return f"https://ghcr.example/v2/homebrew/core/{name}/blobs/{platform}"


def make_record(
    name: str,
    deps: list[str] | None = None,
    *,
    version: str = "1.0",
    revision: int = 0,
    body: bytes | None = None,
    platforms: tuple[str, ...] = (PLATFORM,),
) -> PackageRecord:
    """PackageRecord whose bottles all point at *body* (default: a tarball)."""
    if body is None:
        body = build_tarball({f"{name}/{version}/bin/{name}": f"#!{name}\n".encode()})
    digest = sha256_hex(body)
    return PackageRecord(
        name=name,
        description=f"The {name} tool",
        version=version,
        revision=revision,
        deps=list(deps or []),
        bottles={
            p: BottleRef(cellar=":any", url=bottle_url(name, p), sha256=digest)
            for p in platforms
        },
    )


@pytest.fixture
def make_repo():
    """Factory: ``make_repo({"a": [], "b": ["a"]})`` → Repository."""

    def _make(graph: dict[str, list[str]]) -> Repository:
        return Repository.from_records([make_record(n, d) for n, d in graph.items()])

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        cache_root=tmp_path / "cache",
        data_dir=tmp_path / "data",
        platform=PLATFORM,
        fetch_retries=2,
        max_concurrent_fetches=4,
        chunk_size=1024,
    )


@pytest.fixture
def tarball() -> bytes:
    return build_tarball({
        "wget/1.24.5/bin/wget": b"\x7fELF fake binary",
        "wget/1.24.5/share/man/man1/wget.1": b".TH WGET 1\n",
    })
