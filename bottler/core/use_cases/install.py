"""
Install use case — resolve a request, then fetch and stage it.

Two steps so the CLI can confirm in between:

    plan = plan_install(names, ctx)      # metadata + resolution, no bottle traffic
    report = run_install(plan, ctx)      # bounded pool of fetch/stage pipelines
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from bottler.core.context import InstallContext
from bottler.core.models.formula import PackageRecord, Repository
from bottler.core.services.bottle_install.execution.download import Opener
from bottler.core.services.bottle_install.execution.fetch_task import BottleFetcher
from bottler.core.services.bottle_install.orchestration.orchestrator import RunReport, Runner, run_all
from bottler.core.services.bottle_install.orchestration.pipeline import BottlePipeline
from bottler.core.services.bottle_install.resolver.dependency_order import resolve_install_order
from bottler.core.services.formula_index import load_repository

logger = logging.getLogger(__name__)


@dataclass
class InstallPlan:
    """Resolved install order for one request."""

    requested: list[str]
    order: list[str]
    repo: Repository
    platform: str
    records: list[PackageRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.records:
            self.records = [self.repo.require(name) for name in self.order]

    def summary(self) -> str:
        """One-line description used by the confirmation prompt."""
        listing = ", ".join(f"{r.name} of {r.version_fmt}" for r in self.records)
        return f"will install {len(self.records)} pkgs: {listing}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "requested": list(self.requested),
            "platform": self.platform,
            "order": [
                {"name": r.name, "version": r.version_fmt, "deps": list(r.deps)}
                for r in self.records
            ],
        }


def plan_install(
    requested: Iterable[str],
    ctx: InstallContext,
    *,
    refresh: bool = False,
    strict_cycles: bool = False,
    opener: Opener | None = None,
) -> InstallPlan:
    """Load the formula index and resolve *requested*.

    Raises:
        NetworkError, RepositoryParseError: The index could not be loaded.
        MissingPackageError, DependencyCycleError: Resolution failed.
    """
    names = list(dict.fromkeys(requested))
    repo = load_repository(ctx.settings, sink=ctx.sink, refresh=refresh, opener=opener)
    order = resolve_install_order(names, repo, strict_cycles=strict_cycles)
    logger.info("Install order for %s: %s", names, order)
    return InstallPlan(requested=names, order=order, repo=repo, platform=ctx.platform.identifier)


def run_install(
    plan: InstallPlan,
    ctx: InstallContext,
    *,
    runner: Runner | None = None,
    opener: Opener | None = None,
) -> RunReport:
    """Fetch, verify and stage every package of *plan*."""
    if runner is None:
        fetcher = BottleFetcher(ctx.settings, opener=opener)
        runner = BottlePipeline(ctx, fetcher=fetcher)
    return run_all(plan.order, plan.repo, ctx, runner=runner)
