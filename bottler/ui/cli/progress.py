"""
Terminal progress renderer.

Subscribed to the run's ``ProgressBus``; prints one line per phase
change of a package, plus aggregate and abort notices.  Byte-level
moves are not printed line by line; the size shows up in the
``downloading`` and ``done`` lines.

Everything goes to stderr so ``--json`` output on stdout stays clean.
The bus calls subscribers from every fetch worker, so the renderer
serializes its own state and output.
"""

from __future__ import annotations

import threading

import click

from bottler.core.observability.progress import (
    AbortEvent,
    Phase,
    ProgressEvent,
    TaskEvent,
    TotalEvent,
)
from bottler.core.services.bottle_install.domain.download_helpers import _fmt_progress, _fmt_size

_PHASE_ICONS = {
    Phase.SEARCHING_CACHE: "🔎",
    Phase.RESUMING: "⏯️ ",
    Phase.DOWNLOADING: "⬇️ ",
    Phase.VERIFYING: "🔐",
    Phase.RETRYING: "🔁",
    Phase.UNPACKING: "📦",
    Phase.DONE: "✅",
}


class TerminalRenderer:
    """Progress subscriber writing human-readable lines."""

    def __init__(self, *, quiet: bool = False, verbose: bool = False) -> None:
        self.quiet = quiet
        self.verbose = verbose
        self._phases: dict[str, Phase] = {}
        self._lock = threading.Lock()
        self.lines = 0

    def __call__(self, event: ProgressEvent) -> None:
        with self._lock:
            if isinstance(event, TaskEvent):
                self._on_task(event)
            elif isinstance(event, TotalEvent):
                self._on_total(event)
            elif isinstance(event, AbortEvent):
                self._on_abort(event)

    def _echo(self, text: str, **style: object) -> None:
        self.lines += 1
        click.secho(text, err=True, **style)

    def _on_task(self, event: TaskEvent) -> None:
        if self._phases.get(event.package) == event.phase and not event.message:
            return
        self._phases[event.package] = event.phase

        if self.quiet and event.phase not in (Phase.RETRYING, Phase.DONE):
            return
        if event.phase == Phase.SEARCHING_CACHE and not (event.message or self.verbose):
            return

        label = f"{event.package} {event.version}".strip()
        icon = _PHASE_ICONS.get(event.phase, "•")
        detail = event.message

        if event.phase == Phase.DOWNLOADING and event.total:
            detail = detail or _fmt_size(event.total)
        elif event.phase == Phase.DONE and event.total and not detail:
            detail = _fmt_progress(event.transferred, event.total)

        line = f"{icon} {label}: {event.phase}"
        if detail:
            line += f" ({detail})"
        self._echo(line, fg="yellow" if event.phase == Phase.RETRYING else None)

    def _on_total(self, event: TotalEvent) -> None:
        if not self.quiet:
            self._echo(f"   [{event.completed}/{event.total}] packages ready", dim=True)

    def _on_abort(self, event: AbortEvent) -> None:
        self._echo(f"🛑 aborting: {event.package} failed", fg="red", bold=True)
