"""
L1 Domain — Cache key derivation (pure).

A bottle's cache file name is derived from its download URL and the
package identity, so two different packages (or two platforms of one
package) can never share a cache path.

Layout under ``<cache_root>/downloads``::

    <sha256(url)>--<name>--<version>_<revision>.<platform>.bottle.tar.gz
    <same>.incomplete

No I/O, no subprocess.
"""

from __future__ import annotations

import hashlib

from bottler.core.models.formula import PackageRecord

BOTTLE_EXT = "tar.gz"
INCOMPLETE_SUFFIX = ".incomplete"


def url_digest(url: str) -> str:
    """Hex SHA-256 of the download URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def bottle_basename(record: PackageRecord, platform: str) -> str:
    """File name of a bottle without the URL digest prefix."""
    return f"{record.name}--{record.version_fmt}.{platform}.bottle.{BOTTLE_EXT}"


def cache_key(record: PackageRecord, platform: str, url: str) -> str:
    """Deterministic cache key for one package bottle."""
    return f"{url_digest(url)}--{bottle_basename(record, platform)}"


def incomplete_name(key: str) -> str:
    """File name of the in-progress sibling of *key*."""
    return f"{key}{INCOMPLETE_SUFFIX}"
