"""Clock and timer services for the simulated processing delays.

Every delayed action in a workflow is scheduled as a sequence of
``ScheduledStep`` values tagged with the run they belong to. A step is only
executed if its run is still current when it comes due; steps from a
superseded run are discarded.
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

IsCurrent = Callable[[str], bool]


@dataclass(frozen=True)
class ScheduledStep:
    """An action to run ``delay`` seconds after the sequence is scheduled."""

    delay: float
    action: Callable[[], None]


def _ordered(steps: Iterable[ScheduledStep]) -> list[ScheduledStep]:
    # sorted() is stable, so equal delays keep their declared order
    return sorted(steps, key=lambda step: step.delay)


class TimerService(ABC):
    """Supplies the current time and runs delayed step sequences."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current UTC time."""

    @abstractmethod
    def schedule(self, run_id: str, steps: Iterable[ScheduledStep], is_current: IsCurrent) -> None:
        """
        Schedule a sequence of steps for a run.

        Args:
            run_id: Identifier of the run the steps belong to
            steps: Steps with delays relative to now
            is_current: Called with ``run_id`` right before each step fires;
                the step is discarded when it returns False
        """

    @abstractmethod
    def pending(self, run_id: str) -> int:
        """Return how many steps are still waiting to fire for a run."""

    @abstractmethod
    def shutdown(self) -> None:
        """Drop every pending step."""


class AsyncioTimerService(TimerService):
    """
    Timer backed by the running asyncio event loop.

    Each scheduled sequence becomes one task that sleeps between steps, so
    steps of a sequence fire in delay order and never overlap. Must be used
    from within a running event loop (e.g., FastAPI handlers).
    """

    def __init__(self):
        self._tasks: dict[asyncio.Task, str] = {}
        self._remaining: dict[asyncio.Task, int] = {}

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def schedule(self, run_id: str, steps: Iterable[ScheduledStep], is_current: IsCurrent) -> None:
        ordered = _ordered(steps)
        if not ordered:
            return
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run_sequence(run_id, ordered, is_current))
        self._tasks[task] = run_id
        self._remaining[task] = len(ordered)
        task.add_done_callback(self._on_done)

    async def _run_sequence(self, run_id: str, steps: list[ScheduledStep], is_current: IsCurrent) -> None:
        task = asyncio.current_task()
        elapsed = 0.0
        for step in steps:
            await asyncio.sleep(max(0.0, step.delay - elapsed))
            elapsed = step.delay
            if task in self._remaining:
                self._remaining[task] -= 1
            if not is_current(run_id):
                logger.debug(f"Discarding stale steps for run {run_id}")
                return
            try:
                step.action()
            except Exception:
                logger.exception(f"Scheduled step failed for run {run_id}")

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.pop(task, None)
        self._remaining.pop(task, None)

    def pending(self, run_id: str) -> int:
        return sum(
            self._remaining.get(task, 0)
            for task, task_run_id in self._tasks.items()
            if task_run_id == run_id and not task.done()
        )

    def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._remaining.clear()


@dataclass(order=True)
class _DueStep:
    due: float
    seq: int
    run_id: str = ""
    step: ScheduledStep | None = None
    is_current: IsCurrent | None = None


class ManualTimerService(TimerService):
    """
    Virtual-time timer: nothing fires until time is advanced explicitly.

    Useful for replaying a workflow deterministically (tests, demos)
    without real sleeps.
    """

    def __init__(self, start: datetime | None = None):
        self._start = start or datetime.now(timezone.utc)
        self._elapsed = 0.0
        self._queue: list[_DueStep] = []
        self._counter = itertools.count()

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def schedule(self, run_id: str, steps: Iterable[ScheduledStep], is_current: IsCurrent) -> None:
        for step in _ordered(steps):
            heapq.heappush(
                self._queue,
                _DueStep(self._elapsed + step.delay, next(self._counter), run_id, step, is_current),
            )

    def advance(self, seconds: float) -> int:
        """
        Move virtual time forward and fire every step that comes due.

        Steps scheduled by a firing step are honoured if they also fall
        within the advanced window.

        Returns:
            int: Number of steps that were executed (stale ones excluded)
        """
        return self._advance_to(self._elapsed + seconds)

    def _advance_to(self, target: float) -> int:
        fired = 0
        while self._queue and self._queue[0].due <= target:
            due_step = heapq.heappop(self._queue)
            self._elapsed = due_step.due
            if not due_step.is_current(due_step.run_id):
                logger.debug(f"Discarding stale step for run {due_step.run_id}")
                continue
            due_step.step.action()
            fired += 1
        self._elapsed = target
        return fired

    def run_until_idle(self) -> int:
        """Advance until nothing is pending. Returns the number of executed steps."""
        fired = 0
        while self._queue:
            fired += self._advance_to(self._queue[0].due)
        return fired

    def pending(self, run_id: str) -> int:
        return sum(1 for due_step in self._queue if due_step.run_id == run_id)

    def shutdown(self) -> None:
        self._queue.clear()
