"""
L4 Execution — Archive stager.

Unpacks a verified bottle into a fresh temporary directory.  The
staging directory is the last artifact of an install run; linking its
contents into a prefix happens elsewhere.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
import tempfile
import time
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from bottler.core.errors import ArchiveError
from bottler.core.observability.progress import NullSink, Phase, TaskReporter

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


def staging_dir_name(source: Path) -> str:
    """Unique directory name for one staging of *source*."""
    seed = f"{source}{time.time_ns()}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


def _read_magic(path: Path) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read(len(GZIP_MAGIC))
    except OSError as e:
        raise ArchiveError(f"cannot open archive ({e.strerror or e})", path=path) from e


def _tracked_members(
    tar: tarfile.TarFile, raw: BinaryIO, reporter: TaskReporter,
) -> Iterator[tarfile.TarInfo]:
    for member in tar:
        yield member
        reporter.set_position(raw.tell())


def stage_archive(
    path: Path,
    *,
    reporter: TaskReporter | None = None,
    temp_root: Path | None = None,
) -> Path:
    """Extract the gzip-compressed tarball at *path*.

    Entries go through the tar ``data`` filter: absolute names, links
    escaping the destination and device files are rejected.  On any
    failure the partly filled directory is removed.

    Returns:
        The staging directory.

    Raises:
        ArchiveError: Not a gzip file, corrupt stream or a rejected entry.
    """
    path = Path(path)
    reporter = reporter or TaskReporter(NullSink(), path.name)

    if _read_magic(path) != GZIP_MAGIC:
        raise ArchiveError("unrecognized archive format", path=path)

    root = Path(temp_root) if temp_root is not None else Path(tempfile.gettempdir())
    dest = root / staging_dir_name(path)
    try:
        dest.mkdir(parents=True)
        size = path.stat().st_size
    except OSError as e:
        raise ArchiveError(f"cannot create staging directory ({e.strerror or e})", path=dest) from e

    reporter.phase(Phase.UNPACKING, total=size)
    try:
        with open(path, "rb") as raw, tarfile.open(fileobj=raw, mode="r:gz") as tar:
            tar.extractall(dest, members=_tracked_members(tar, raw, reporter), filter="data")
    except (tarfile.TarError, EOFError, zlib.error, OSError) as e:
        shutil.rmtree(dest, ignore_errors=True)
        raise ArchiveError(f"cannot unpack bottle ({e})", path=path) from e

    reporter.set_position(size)
    logger.debug("Staged %s into %s", path.name, dest)
    return dest
