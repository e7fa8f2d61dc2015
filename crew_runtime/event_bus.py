"""
Event Bus - publish/subscribe between plugins.

Supports:
- Ordered subscriptions per event name
- Synchronous emission with per-handler error isolation
- Awaited emission that settles every handler before returning
"""

import asyncio
import inspect
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List

from crew_common.logging import get_bound_logger
from crew_common.task_management import TaskTracker, has_running_loop

from .types import EventHandler, Unsubscribe


@dataclass
class Subscription:
    """One ``on()`` call. Identity, not handler equality, is what unsubscribes."""
    event: str
    handler: EventHandler
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)


class EventBus:
    """
    Event bus for the runtime.
    Routes events to handlers in the order they subscribed.
    """

    def __init__(self, logger=None):
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self.logger = logger or get_bound_logger("event_bus")
        # Coroutines returned to the synchronous emit()
        self.background_tasks = TaskTracker("event_bus", log=self.logger)

        self.stats = {
            "events_emitted": 0,
            "handlers_failed": 0,
        }

    def on(self, event: str, handler: EventHandler) -> Unsubscribe:
        """
        Subscribe ``handler`` to ``event``.

        Returns:
            Closure removing this subscription; calling it again is a no-op
        """
        subscription = Subscription(event=event, handler=handler)
        self._subscriptions[event].append(subscription)

        def unsubscribe() -> None:
            subscriptions = self._subscriptions.get(event)
            if not subscriptions:
                return
            for i, sub in enumerate(subscriptions):
                if sub is subscription:
                    del subscriptions[i]
                    break
            if not subscriptions:
                del self._subscriptions[event]

        return unsubscribe

    def emit(self, event: str, data: Any = None) -> None:
        """
        Invoke every handler for ``event`` synchronously, in order.

        A failing handler is logged and does not stop the others. Handlers
        that return a coroutine are scheduled on the running loop.
        """
        self.stats["events_emitted"] += 1

        for subscription in list(self._subscriptions.get(event, ())):
            try:
                result = subscription.handler(data)
            except Exception as e:
                self._handler_failed(event, e)
                continue

            if inspect.isawaitable(result):
                self._schedule(event, result)

    def _schedule(self, event: str, awaitable) -> None:
        if has_running_loop():
            self.background_tasks.create_task(
                self._await_handler(event, awaitable),
                task_name=f"event:{event}",
            )
            return

        # No loop to run it on
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        self.logger.warning(
            f"Async handler for event {event} dropped: emit() called outside an event loop, use emit_async()"
        )

    async def _await_handler(self, event: str, awaitable) -> None:
        try:
            await awaitable
        except Exception as e:
            self._handler_failed(event, e)

    async def emit_async(self, event: str, data: Any = None) -> None:
        """
        Invoke every handler for ``event`` and wait until all have settled.

        All handlers are started before any is awaited. Failures are logged
        per handler and never raised to the caller.
        """
        self.stats["events_emitted"] += 1

        pending = []
        for subscription in list(self._subscriptions.get(event, ())):
            try:
                result = subscription.handler(data)
            except Exception as e:
                self._handler_failed(event, e)
                continue

            if inspect.isawaitable(result):
                pending.append(asyncio.ensure_future(result))

        if not pending:
            return

        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                self._handler_failed(event, result)

    def _handler_failed(self, event: str, error: BaseException) -> None:
        self.stats["handlers_failed"] += 1
        # CancelledError has an empty message
        reason = str(error) or type(error).__name__
        self.logger.error(f"Error in handler for event {event}: {reason}")

    def listener_count(self, event: str) -> int:
        """Number of live subscriptions for ``event``."""
        return len(self._subscriptions.get(event, ()))

    def event_names(self) -> List[str]:
        """Events that currently have at least one subscription."""
        return [name for name, subs in self._subscriptions.items() if subs]

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._subscriptions.clear()
