"""
Error taxonomy — every failure the install core can raise.

All errors derive from ``BottlerError`` so callers can catch the whole
family at one seam (the orchestrator, the CLI).  Errors carry the
identifying attributes a caller needs to report them (package name,
platform, URL, path) and are chained with ``raise ... from exc`` so the
full causal chain survives up to the user.
"""

from __future__ import annotations

from pathlib import Path


class BottlerError(Exception):
    """Base class for install-core failures."""


# ── Resolution ──────────────────────────────────────────────────


class MissingPackageError(BottlerError):
    """A requested name or dependency is not in the repository."""

    def __init__(self, name: str, *, required_by: str | None = None) -> None:
        self.name = name
        self.required_by = required_by
        if required_by:
            message = f"Nonexistent package '{name}' listed as a dependency of '{required_by}'"
        else:
            message = f"Nonexistent package '{name}'"
        super().__init__(message)


class DependencyCycleError(BottlerError):
    """Strict resolution found a dependency cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")


class UnavailableForPlatformError(BottlerError):
    """The package ships no bottle for the current platform."""

    def __init__(self, name: str, platform: str) -> None:
        self.name = name
        self.platform = platform
        super().__init__(f"Package {name} is unavailable for {platform}")


class UnsupportedPlatformError(BottlerError):
    """The running system cannot be mapped to a bottle platform identifier."""


# ── Transfer ────────────────────────────────────────────────────


class NetworkError(BottlerError):
    """Transport failure while talking to a remote endpoint."""

    def __init__(self, message: str, *, url: str) -> None:
        self.url = url
        super().__init__(f"{message} ({url})")


class ContentLengthMissingError(BottlerError):
    """The server did not declare the response size."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"No Content-Length received from {url}")


class DownloadCorruptedError(BottlerError):
    """Post-transfer checksum did not match the declared digest."""

    def __init__(self, url: str, *, expected: str, actual: str) -> None:
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"bottle download is corrupted: expected sha256 {expected}, got {actual}"
        )


class FetchCancelledError(BottlerError):
    """A task observed the cancellation signal and stopped."""

    def __init__(self, package: str) -> None:
        self.package = package
        super().__init__(f"Fetch of {package} was cancelled")


# ── Local storage ───────────────────────────────────────────────


class CacheIOError(BottlerError):
    """Filesystem failure on a cache path."""

    def __init__(self, message: str, *, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {path}")


class ArchiveError(BottlerError):
    """Decompression or extraction of a bottle failed."""

    def __init__(self, message: str, *, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {path}")


# ── Metadata ────────────────────────────────────────────────────


class RepositoryParseError(BottlerError):
    """Remote formula metadata is malformed."""

    def __init__(self, message: str, *, package: str, field: str = "") -> None:
        self.package = package
        self.field = field
        where = f"{package}.{field}" if field else package
        super().__init__(f"Failed to parse formula {where}: {message}")


class SnapshotError(BottlerError):
    """The local metadata snapshot is missing, unreadable or corrupt."""

    def __init__(self, message: str, *, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {path}")


# ── Package context ─────────────────────────────────────────────


class PackageFailedError(BottlerError):
    """Terminal failure of one package's pipeline, cause chained."""

    def __init__(self, package: str, *, stage: str) -> None:
        self.package = package
        self.stage = stage
        super().__init__(f"while {stage} {package}")


def error_chain(exc: BaseException) -> list[str]:
    """Return the messages of ``exc`` and every exception behind it.

    Follows ``__cause__`` first, then ``__context__`` unless the context
    was suppressed.  Stops on a repeated object.
    """
    chain: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or type(current).__name__
        chain.append(text)
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return chain
