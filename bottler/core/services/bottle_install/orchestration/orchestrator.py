"""
L5 Orchestration — Bounded worker pool with fail-fast abort.

``run_all()`` runs one pipeline per resolved package on a thread pool:

- at most ``settings.max_concurrent_fetches`` pipelines run at once;
- whenever one finishes, the next queued package is launched at once
  (continuous refill, not batch-by-batch);
- the first domain failure stops all launching, sets the shared
  cancellation event and becomes the run's error.  Later failures are
  logged and dropped.

Already-promoted cache entries are kept after an abort; they are valid
cache hits for the next run.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bottler.core.errors import BottlerError, FetchCancelledError, error_chain
from bottler.core.models.formula import PackageRecord, Repository
from bottler.core.observability.progress import AbortEvent, CompletedCounter, TotalEvent
from bottler.core.services.bottle_install.orchestration.pipeline import BottlePipeline

if TYPE_CHECKING:
    from bottler.core.context import InstallContext

logger = logging.getLogger(__name__)

Runner = Callable[[PackageRecord, threading.Event], Path]


@dataclass
class RunReport:
    """Outcome of one ``run_all()``."""

    total: int = 0
    staged: dict[str, Path] = field(default_factory=dict)
    completed: int = 0
    failed_package: str | None = None
    error: BottlerError | None = None
    cancelled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.completed == self.total

    @property
    def status(self) -> str:
        return "ok" if self.ok else "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "status": self.status,
            "total": self.total,
            "completed": self.completed,
            "staged": {name: str(path) for name, path in self.staged.items()},
            "failed_package": self.failed_package,
            "error": error_chain(self.error) if self.error else None,
            "cancelled": list(self.cancelled),
            "skipped": list(self.skipped),
        }


def run_all(
    ordered_names: Iterable[str],
    repo: Repository,
    ctx: InstallContext,
    *,
    runner: Runner | None = None,
) -> RunReport:
    """Fetch and stage every package in *ordered_names*.

    Args:
        ordered_names: Output of the resolver.  Launch order follows it,
            completion order is unconstrained.
        repo: Repository the names resolve against.
        ctx: Run context (settings, platform, progress sink).
        runner: Per-package callable; defaults to ``BottlePipeline(ctx)``.

    Returns:
        A RunReport.  Domain failures are reported in it, not raised.

    Raises:
        MissingPackageError: A name is not in *repo*; raised before any
            task starts.
        Exception: A non-domain error from a task, re-raised after the
            in-flight tasks have drained.
    """
    records = [repo.require(name) for name in ordered_names]
    report = RunReport(total=len(records))
    if not records:
        return report

    runner = runner or BottlePipeline(ctx)
    sink = ctx.sink
    cancel = threading.Event()
    counter = CompletedCounter()
    queue: deque[PackageRecord] = deque(records)
    max_workers = min(ctx.settings.max_concurrent_fetches, len(records))
    unexpected: BaseException | None = None

    logger.info("Fetching %d packages with %d workers", len(records), max_workers)

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="fetch",
    ) as pool:
        running: dict[concurrent.futures.Future[Path], PackageRecord] = {}

        def _launch() -> None:
            while queue and len(running) < max_workers and not cancel.is_set():
                record = queue.popleft()
                running[pool.submit(runner, record, cancel)] = record

        _launch()
        while running:
            done, _ = concurrent.futures.wait(
                running, return_when=concurrent.futures.FIRST_COMPLETED,
            )
            for future in done:
                record = running.pop(future)
                try:
                    staged = future.result()
                except FetchCancelledError:
                    report.cancelled.append(record.name)
                except BottlerError as e:
                    if report.error is None:
                        report.error = e
                        report.failed_package = record.name
                        cancel.set()
                        logger.error("Aborting run, %s failed: %s", record.name, e)
                        sink.emit(AbortEvent(package=record.name, error=e))
                    else:
                        logger.info("Ignoring failure of %s after abort: %s", record.name, e)
                except Exception as e:
                    logger.exception("Unexpected error while fetching %s", record.name)
                    if unexpected is None:
                        unexpected = e
                    cancel.set()
                else:
                    report.staged[record.name] = staged
                    report.completed = counter.inc()
                    sink.emit(TotalEvent(completed=report.completed, total=report.total))
            _launch()

    report.skipped = [record.name for record in queue]

    if unexpected is not None:
        raise unexpected

    logger.info(
        "Run %s: %d/%d staged, %d cancelled, %d not started",
        report.status, report.completed, report.total, len(report.cancelled), len(report.skipped),
    )
    return report
