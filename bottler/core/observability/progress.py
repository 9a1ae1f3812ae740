"""
Progress events — the sink every fetch worker reports into.

Workers never render anything themselves.  They emit small immutable
events into a ``ProgressSink``; the CLI subscribes a renderer, tests
subscribe a recorder.

Thread safety model
───────────────────
- ``ProgressBus._lock`` protects the subscriber list only.  Events are
  delivered on the emitting worker thread, outside the lock, so a
  subscriber must guard its own state.  One package is handled by one
  worker, so its events always arrive in order.
- ``CompletedCounter`` is shared by all workers and has its own lock.

Events
──────
``TaskEvent``   one package changed phase or moved bytes
``TotalEvent``  the aggregate completed-count moved
``AbortEvent``  the run is being aborted because of one package
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from bottler.core.errors import error_chain

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    """Per-task lifecycle phases."""

    SEARCHING_CACHE = "searching-cache"
    RESUMING = "resuming"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    RETRYING = "retrying"
    UNPACKING = "unpacking"
    DONE = "done"


@dataclass(frozen=True)
class TaskEvent:
    package: str
    version: str
    phase: Phase
    transferred: int = 0
    total: int = 0
    message: str = ""


@dataclass(frozen=True)
class TotalEvent:
    completed: int
    total: int


@dataclass(frozen=True)
class AbortEvent:
    package: str
    error: BaseException

    @property
    def chain(self) -> list[str]:
        return error_chain(self.error)


ProgressEvent = TaskEvent | TotalEvent | AbortEvent
Subscriber = Callable[[ProgressEvent], None]


class ProgressSink(Protocol):
    def emit(self, event: ProgressEvent) -> None: ...


class NullSink:
    """Sink that discards everything."""

    def emit(self, event: ProgressEvent) -> None:
        return None


class ProgressBus:
    """Thread-safe in-process fan-out to subscriber callbacks.

    A subscriber that raises is logged and dropped; the other
    subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Subscriber:
        with self._lock:
            self._subscribers.append(callback)
        return callback

    def emit(self, event: ProgressEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Progress subscriber %r failed, dropping it", callback)
                self._drop(callback)

    def _drop(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)


class CompletedCounter:
    """Aggregate count of finished tasks, safe for concurrent increment."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def inc(self, n: int = 1) -> int:
        """Increment and return the new value."""
        with self._lock:
            self._value += n
            return self._value


class TaskReporter:
    """One package's view of a sink.

    Tracks the current phase, position and total the way a progress
    bar would, and emits a ``TaskEvent`` on every change.
    """

    def __init__(self, sink: ProgressSink, package: str, version: str = "") -> None:
        self.sink = sink
        self.package = package
        self.version = version
        self.phase_name = Phase.SEARCHING_CACHE
        self.position = 0
        self.total = 0

    def phase(self, phase: Phase, message: str = "", *, total: int | None = None) -> None:
        self.phase_name = phase
        if total is not None:
            self.total = total
            self.position = 0
        self._emit(message)

    def set_total(self, total: int) -> None:
        self.total = total
        self._emit()

    def set_position(self, position: int) -> None:
        self.position = position
        self._emit()

    def advance(self, n: int) -> None:
        self.position += n
        self._emit()

    def _emit(self, message: str = "") -> None:
        self.sink.emit(TaskEvent(
            package=self.package,
            version=self.version,
            phase=self.phase_name,
            transferred=self.position,
            total=self.total,
            message=message,
        ))
