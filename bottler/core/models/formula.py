"""
Formula model — package records and the repository that holds them.

A ``Repository`` is built once per run (from the remote index or from
the local snapshot) and never mutated afterwards; it is shared
read-only by the resolver and by every fetch worker.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from bottler.core.errors import MissingPackageError, UnavailableForPlatformError


class BottleRef(BaseModel):
    """One platform's prebuilt archive."""

    model_config = ConfigDict(frozen=True)

    cellar: str
    url: str
    sha256: str


class PackageRecord(BaseModel):
    """Metadata for one installable package.

    Only ``deps`` affects install order; ``opt_deps`` and ``rec_deps``
    are carried for display.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    version: str
    revision: int = 0
    deps: list[str] = Field(default_factory=list)
    opt_deps: list[str] = Field(default_factory=list)
    rec_deps: list[str] = Field(default_factory=list)
    bottles: dict[str, BottleRef] = Field(default_factory=dict)

    @property
    def version_fmt(self) -> str:
        """Version and revision as used in bottle file names."""
        return f"{self.version}_{self.revision}"

    def bottle_for(self, platform: str) -> BottleRef:
        """Return the bottle for *platform* or raise."""
        bottle = self.bottles.get(platform)
        if bottle is None:
            raise UnavailableForPlatformError(self.name, platform)
        return bottle


class Repository(BaseModel):
    """Immutable name → record mapping."""

    model_config = ConfigDict(frozen=True)

    formulae: dict[str, PackageRecord] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.formulae)

    def __contains__(self, name: object) -> bool:
        return name in self.formulae

    def get(self, name: str) -> PackageRecord | None:
        return self.formulae.get(name)

    def require(self, name: str, *, required_by: str | None = None) -> PackageRecord:
        """Look up *name*, raising ``MissingPackageError`` if absent."""
        record = self.formulae.get(name)
        if record is None:
            raise MissingPackageError(name, required_by=required_by)
        return record

    @classmethod
    def from_records(cls, records: list[PackageRecord]) -> Repository:
        return cls(formulae={r.name: r for r in records})
