"""
Task Management Utilities - tracked background tasks.

Work the runtime starts but does not await (async handlers fired from a
synchronous emit, action handlers still running after their caller timed
out) is wrapped in tracked tasks so failures are logged instead of surfacing
as "Task exception was never retrieved". Each owner keeps its own task set;
nothing is shared between Runtime instances.
"""

import asyncio
from typing import Coroutine, Optional, Set

from crew_common.logging import get_bound_logger

logger = get_bound_logger("task_management")


class TaskTracker:
    """Set of background tasks owned by a single subsystem."""

    def __init__(self, owner: str, log=None):
        self.owner = owner
        self._log = log or logger
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def track(self, task: asyncio.Future, task_name: Optional[str] = None) -> asyncio.Future:
        """Track an already-created task or future."""
        self._tasks.add(task)
        label = task_name or "unnamed"

        def done_callback(t: asyncio.Future):
            self._tasks.discard(t)

            if t.cancelled():
                self._log.debug(f"Task {label} cancelled for {self.owner}")
                return
            exc = t.exception()
            if exc is not None:
                self._log.error(f"Task {label} failed for {self.owner}: {exc}")

        task.add_done_callback(done_callback)
        return task

    def create_task(self, coro: Coroutine, task_name: Optional[str] = None) -> asyncio.Task:
        """Create and track a background task.

        Example:
            tracker.create_task(handler(data), task_name="event:saved")
        """
        task = asyncio.ensure_future(coro)
        return self.track(task, task_name=task_name)


def has_running_loop() -> bool:
    """True when called from inside a running asyncio event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
