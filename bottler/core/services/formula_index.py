"""
Formula index — fetch, parse and cache the remote package metadata.

The remote API returns one JSON array of formula objects.  Each object
is validated against a typed pydantic schema; the first failure is
reported as a ``RepositoryParseError`` naming the package and the
dotted path of the offending field.

``load_repository()`` is the entry point: it reads the local snapshot
when one is usable and falls back to a fresh remote fetch otherwise,
snapshotting the result for the next run.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from bottler import __version__
from bottler.core.errors import NetworkError, RepositoryParseError, SnapshotError
from bottler.core.models.formula import BottleRef, PackageRecord, Repository
from bottler.core.models.settings import Settings
from bottler.core.observability.progress import NullSink, Phase, ProgressSink, TaskReporter
from bottler.core.persistence.snapshot import load_snapshot, save_snapshot

logger = logging.getLogger(__name__)

Opener = Callable[..., Any]

INDEX_PSEUDO_PACKAGE = "formulae"


# ── API schema ──────────────────────────────────────────────────


class ApiBottleFile(BaseModel):
    cellar: str
    url: str
    sha256: str


class ApiBottleStable(BaseModel):
    files: dict[str, ApiBottleFile] = Field(default_factory=dict)


class ApiBottle(BaseModel):
    stable: ApiBottleStable | None = None


class ApiVersions(BaseModel):
    stable: str


class ApiFormula(BaseModel):
    """One element of ``formula.json``.  Unknown keys are ignored."""

    name: str
    desc: str | None
    versions: ApiVersions
    revision: int = 0
    dependencies: list[str]
    optional_dependencies: list[str]
    recommended_dependencies: list[str]
    bottle: ApiBottle = Field(default_factory=ApiBottle)

    def to_record(self) -> PackageRecord:
        files = self.bottle.stable.files if self.bottle.stable else {}
        return PackageRecord(
            name=self.name,
            description=self.desc or "",
            version=self.versions.stable,
            revision=self.revision,
            deps=list(self.dependencies),
            opt_deps=list(self.optional_dependencies),
            rec_deps=list(self.recommended_dependencies),
            bottles={
                platform: BottleRef(cellar=f.cellar, url=f.url, sha256=f.sha256)
                for platform, f in files.items()
            },
        )


# ── Parsing ─────────────────────────────────────────────────────


def parse_index(payload: bytes | str | list[Any]) -> Repository:
    """Parse the remote index into a Repository.

    Args:
        payload: Raw JSON bytes/text, or an already decoded list.

    Raises:
        RepositoryParseError: On malformed JSON, a non-array document,
            or the first formula failing validation.
    """
    if isinstance(payload, (bytes, str)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RepositoryParseError(f"invalid JSON ({e})", package="<index>") from e
    else:
        data = payload

    if not isinstance(data, list):
        raise RepositoryParseError(
            "did not find top-level array in API answer", package="<index>",
        )

    formulae: dict[str, PackageRecord] = {}
    for index, item in enumerate(data):
        label = _formula_label(item, index)
        try:
            formula = ApiFormula.model_validate(item)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise RepositoryParseError(first["msg"], package=label, field=field) from e
        formulae[formula.name] = formula.to_record()

    logger.info("Parsed %d formulae from index", len(formulae))
    return Repository(formulae=formulae)


def _formula_label(item: Any, index: int) -> str:
    if isinstance(item, dict) and isinstance(item.get("name"), str):
        return item["name"]
    return f"#{index}"


# ── Remote fetch ────────────────────────────────────────────────


def fetch_index(
    url: str,
    *,
    timeout: float = 30.0,
    sink: ProgressSink | None = None,
    opener: Opener | None = None,
    chunk_size: int = 1 << 18,
) -> bytes:
    """Download the raw index document, reporting progress."""
    opener = opener or urllib.request.urlopen
    reporter = TaskReporter(sink or NullSink(), INDEX_PSEUDO_PACKAGE)
    reporter.phase(Phase.DOWNLOADING, "opening connection...")

    request = urllib.request.Request(
        url, headers={"User-Agent": f"bottler/{__version__}", "Accept": "application/json"},
    )
    chunks: list[bytes] = []
    try:
        with opener(request, timeout=timeout) as resp:
            length = resp.headers.get("Content-Length")
            if length and length.isdigit():
                reporter.set_total(int(length))
            while True:
                chunk = resp.read(chunk_size)
                if not chunk:
                    break
                chunks.append(chunk)
                reporter.advance(len(chunk))
    except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
        raise NetworkError(f"cannot fetch formula index: {e}", url=url) from e

    reporter.phase(Phase.DONE)
    return b"".join(chunks)


def load_repository(
    settings: Settings,
    *,
    sink: ProgressSink | None = None,
    refresh: bool = False,
    opener: Opener | None = None,
) -> Repository:
    """Return the formula repository for this run.

    Reads the snapshot unless *refresh* is set.  A missing or corrupt
    snapshot is never fatal: it falls back to the remote index, which
    is then snapshotted best-effort.
    """
    path = settings.snapshot_path

    if not refresh:
        try:
            return load_snapshot(path)
        except SnapshotError as e:
            logger.info("%s — fetching index from %s", e, settings.formulae_url)

    raw = fetch_index(
        settings.formulae_url,
        timeout=settings.http_timeout,
        sink=sink,
        opener=opener,
        chunk_size=settings.chunk_size,
    )
    repo = parse_index(raw)

    try:
        save_snapshot(repo, path)
    except SnapshotError as e:
        logger.warning("Could not snapshot formula index: %s", e)

    return repo
