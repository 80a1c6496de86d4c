"""Cooperative delayed tasks for the session loop."""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass
class ScheduledTask:
    key: str
    generation: int
    due_at: float  # Clock seconds
    callback: Callable[[], None]
    context: str
    interval_ms: Optional[int] = None


class TaskScheduler:
    """
    Fixed-delay tasks keyed by name, run from the owner's loop.

    Scheduling or cancelling a key bumps its generation, so a task armed
    earlier under the same key never fires. Nothing runs until
    ``run_pending()`` is called.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        on_error: Optional[Callable[[str, BaseException], None]] = None,
    ):
        self._clock = clock
        self._on_error = on_error
        self._generations: Dict[str, int] = {}
        self._tasks: Dict[str, ScheduledTask] = {}

    def set_error_handler(self, on_error: Callable[[str, BaseException], None]) -> None:
        self._on_error = on_error

    def _next_generation(self, key: str) -> int:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        return generation

    def schedule(
        self,
        key: str,
        delay_ms: int,
        callback: Callable[[], None],
        context: str = "",
        interval_ms: Optional[int] = None,
    ) -> int:
        """Arm ``callback`` to run after ``delay_ms``, replacing any task under ``key``.

        With ``interval_ms`` the task re-arms itself after every run until
        cancelled.

        Returns:
            The generation of the new task
        """
        generation = self._next_generation(key)
        self._tasks[key] = ScheduledTask(
            key=key,
            generation=generation,
            due_at=self._clock() + max(0, delay_ms) / 1000.0,
            callback=callback,
            context=context or key,
            interval_ms=interval_ms,
        )
        logger.debug(f"Scheduled '{key}' (generation {generation}) in {delay_ms}ms")
        return generation

    def cancel(self, key: str) -> None:
        self._next_generation(key)
        if self._tasks.pop(key, None) is not None:
            logger.debug(f"Cancelled '{key}'")

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    def is_scheduled(self, key: str) -> bool:
        return key in self._tasks

    def generation(self, key: str) -> int:
        return self._generations.get(key, 0)

    def run_pending(self) -> int:
        """Run every task that is due. Returns how many ran."""
        now = self._clock()
        due: List[ScheduledTask] = sorted(
            (task for task in self._tasks.values() if task.due_at <= now),
            key=lambda task: task.due_at,
        )

        ran = 0
        for task in due:
            # An earlier callback may have replaced or cancelled this one
            if self._generations.get(task.key) != task.generation:
                continue

            if task.interval_ms is not None:
                task.due_at = now + task.interval_ms / 1000.0
            else:
                del self._tasks[task.key]

            ran += 1
            try:
                task.callback()
            except Exception as e:
                if self._on_error is None:
                    raise
                logger.exception(f"Scheduled task '{task.key}' failed")
                self._on_error(task.context, e)
        return ran
