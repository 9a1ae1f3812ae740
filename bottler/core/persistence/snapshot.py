"""
Repository snapshot — atomic read/write of the parsed formula index.

The snapshot is stored as JSON at ``Settings.snapshot_path``.  Writes
are atomic (write to temp file, then rename) so a crash mid-write can
never leave a half-written index behind.  Any problem reading it is a
``SnapshotError``; callers treat that as "fetch the index again".
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pydantic import ValidationError

from bottler.core.errors import SnapshotError
from bottler.core.models.formula import Repository

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA_VERSION = 1


def load_snapshot(path: Path) -> Repository:
    """Load a repository snapshot.

    Raises:
        SnapshotError: If the file is missing, unreadable, corrupt, or
            written by an incompatible schema version.
    """
    if not path.is_file():
        raise SnapshotError("index snapshot does not exist", path=path)

    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
    except (OSError, UnicodeDecodeError) as e:
        raise SnapshotError(f"cannot read index snapshot ({e})", path=path) from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"corrupt index snapshot ({e})", path=path) from e

    if not isinstance(data, dict):
        raise SnapshotError("index snapshot has invalid structure", path=path)

    version = data.get("schema_version")
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise SnapshotError(f"unsupported snapshot schema version {version!r}", path=path)

    try:
        repo = Repository.model_validate(data.get("repository"))
    except ValidationError as e:
        raise SnapshotError(f"invalid index snapshot ({e.error_count()} errors)", path=path) from e

    logger.debug("Loaded %d formulae from snapshot %s", len(repo), path)
    return repo


def save_snapshot(repo: Repository, path: Path) -> None:
    """Save a repository snapshot (atomic write).

    Raises:
        SnapshotError: If the snapshot cannot be written.
    """
    payload = {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "repository": repo.model_dump(mode="json"),
    }
    content = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".index_", suffix=".tmp")
    except OSError as e:
        raise SnapshotError(f"cannot create snapshot directory ({e})", path=path) from e

    tmp = Path(tmp_name)
    try:
        with open(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise SnapshotError(f"cannot write index snapshot ({e})", path=path) from e

    logger.debug("Snapshot of %d formulae saved to %s", len(repo), path)
