from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Iterable, Literal

LOGGER = logging.getLogger(__name__)

TaskState = Literal["pending", "done", "cancelled"]


@dataclass(eq=False)
class TimedTask:
    """One animated update; reports completion once, when it ends or is cancelled."""

    name: str
    ends_at: float
    state: TaskState = "pending"
    _callbacks: list[Callable[["TimedTask"], None]] = field(default_factory=list)

    @property
    def settled(self) -> bool:
        return self.state != "pending"

    def on_end(self, callback: Callable[["TimedTask"], None]) -> None:
        if self.settled:
            callback(self)
            return
        self._callbacks.append(callback)

    def cancel(self) -> None:
        self._settle("cancelled")

    def complete(self) -> None:
        self._settle("done")

    def _settle(self, state: TaskState) -> None:
        if self.settled:
            return
        self.state = state
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)


class TransitionClock:
    """Time source for animated redraws, advanced by the host's frame loop."""

    def __init__(self, now: Callable[[], float] = time.monotonic) -> None:
        self._now = now
        self._pending: list[TimedTask] = []

    def now(self) -> float:
        return self._now()

    @property
    def pending(self) -> list[TimedTask]:
        return [t for t in self._pending if not t.settled]

    def session(self, duration_ms: float) -> "TransitionSession":
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        return TransitionSession(clock=self, started_at=self.now(), duration_ms=duration_ms)

    def _track(self, task: TimedTask) -> None:
        self._pending.append(task)

    def advance(self, now: float | None = None) -> int:
        """Complete every task due at ``now``; returns how many completed."""
        at = self.now() if now is None else now
        due = sorted((t for t in self._pending if not t.settled and t.ends_at <= at), key=lambda t: t.ends_at)
        for task in due:
            task.complete()
        self._pending = [t for t in self._pending if not t.settled]
        return len(due)

    def finish_all(self) -> int:
        """Settle everything immediately, e.g. when the surface stops being visible."""
        count = 0
        for task in list(self._pending):
            if not task.settled:
                task.complete()
                count += 1
        self._pending = []
        return count


@dataclass
class TransitionSession:
    """Shared start time and duration for every transition of one redraw pass."""

    clock: TransitionClock
    started_at: float
    duration_ms: float

    @property
    def ends_at(self) -> float:
        return self.started_at + self.duration_ms / 1000.0

    def start(self, name: str) -> TimedTask:
        task = TimedTask(name=name, ends_at=self.ends_at)
        self.clock._track(task)
        return task


class RedrawBarrier:
    """Join over the transitions of one redraw; ``on_complete`` runs once all have settled."""

    def __init__(self, tasks: Iterable[TimedTask], on_complete: Callable[[], None] | None = None) -> None:
        self._tasks = list(tasks)
        self._arrived = 0
        self._on_complete = on_complete
        self.future: Future[int] = Future()
        if not self._tasks:
            self._release()
            return
        for task in self._tasks:
            task.on_end(self._arrive)

    @property
    def expected(self) -> int:
        return len(self._tasks)

    @property
    def arrived(self) -> int:
        return self._arrived

    def done(self) -> bool:
        return self.future.done()

    def _arrive(self, task: TimedTask) -> None:
        self._arrived += 1
        if self._arrived == len(self._tasks):
            self._release()

    def _release(self) -> None:
        if self.future.done():
            return
        LOGGER.debug("redraw barrier released after %d transitions", self._arrived)
        self.future.set_result(self._arrived)
        if self._on_complete is not None:
            self._on_complete()
