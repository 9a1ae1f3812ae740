"""
L5 Orchestration — Per-package pipeline.

    fetch (cache / download / verify / promote) → stage

Any domain failure leaves here as ``PackageFailedError`` naming the
package and the stage, with the underlying error as ``__cause__``.
Cancellation passes through unwrapped so the orchestrator can tell it
apart from a real failure.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING

from bottler.core.errors import BottlerError, FetchCancelledError, PackageFailedError
from bottler.core.models.formula import PackageRecord
from bottler.core.observability.progress import Phase, TaskReporter
from bottler.core.services.bottle_install.execution.fetch_task import BottleFetcher
from bottler.core.services.bottle_install.execution.stager import stage_archive

if TYPE_CHECKING:
    from bottler.core.context import InstallContext


class BottlePipeline:
    """Callable ``(record, cancel) -> staging dir`` run by each worker."""

    def __init__(
        self,
        ctx: InstallContext,
        *,
        fetcher: BottleFetcher | None = None,
        temp_root: Path | None = None,
    ) -> None:
        self.ctx = ctx
        self.fetcher = fetcher or BottleFetcher(ctx.settings)
        self.temp_root = temp_root

    def __call__(self, record: PackageRecord, cancel: threading.Event) -> Path:
        reporter = TaskReporter(self.ctx.sink, record.name, record.version_fmt)

        try:
            path = self.fetcher.fetch(
                record, self.ctx.platform.identifier, reporter=reporter, cancel=cancel,
            )
        except FetchCancelledError:
            raise
        except BottlerError as e:
            raise PackageFailedError(record.name, stage="fetching") from e

        if cancel.is_set():
            raise FetchCancelledError(record.name)

        try:
            staged = stage_archive(path, reporter=reporter, temp_root=self.temp_root)
        except BottlerError as e:
            raise PackageFailedError(record.name, stage="unpacking") from e

        reporter.phase(Phase.DONE, str(staged))
        return staged
