"""
Action Engine - registration and execution of actions.

Handlers are called as ``handler(params, context)`` and may be plain
functions or coroutines. Every handler result is treated as awaitable so
callers always ``await run_action(...)``.

Timeouts are caller-side only: when an action exceeds its timeout the caller
gets ActionTimeoutError while the handler keeps running in the background.
A late failure is logged; a late result is discarded.
"""

import asyncio
import inspect
import numbers
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from crew_common.constants import RESOURCE_ACTION
from crew_common.exceptions import (
    ActionExecutionError,
    ActionTimeoutError,
    DuplicateRegistrationError,
    ValidationError,
)
from crew_common.logging import get_bound_logger, operation_context
from crew_common.task_management import TaskTracker

from .types import ActionDefinition, Unsubscribe

if TYPE_CHECKING:
    from .context import RuntimeContext


class ActionEngine:
    """Keyed store of actions plus the execution contract."""

    def __init__(self, logger=None, default_timeout_ms: Optional[float] = None):
        self._actions: Dict[str, ActionDefinition] = {}
        self._context: Optional["RuntimeContext"] = None
        self.default_timeout_ms = default_timeout_ms
        self.logger = logger or get_bound_logger("action_engine")
        # Handlers still running after their caller timed out
        self.orphaned_tasks = TaskTracker("action_engine", log=self.logger)

    def set_context(self, context: "RuntimeContext") -> None:
        """Inject the context passed to every handler."""
        self._context = context

    def register_action(self, action: ActionDefinition) -> Unsubscribe:
        """
        Register an action and return a closure that unregisters it.

        Raises:
            ValidationError: if id, handler or timeout is missing or malformed
            DuplicateRegistrationError: if the id is already registered
        """
        self._validate(action)

        if action.id in self._actions:
            raise DuplicateRegistrationError(RESOURCE_ACTION, action.id)

        self._actions[action.id] = action
        self.logger.debug(f"Registered action: {action.id}")

        action_id = action.id

        def unregister() -> None:
            self.unregister_action(action_id)

        return unregister

    def _validate(self, action) -> None:
        action_id = getattr(action, "id", None)
        if not isinstance(action_id, str) or not action_id.strip():
            raise ValidationError(RESOURCE_ACTION, "id")
        if not callable(getattr(action, "handler", None)):
            raise ValidationError(RESOURCE_ACTION, "handler", action_id)
        timeout = getattr(action, "timeout", None)
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, numbers.Real) or timeout <= 0:
                raise ValidationError(RESOURCE_ACTION, "timeout", action_id)

    def unregister_action(self, action_id: str) -> bool:
        """Remove an action. Returns False if it was not registered."""
        if self._actions.pop(action_id, None) is None:
            return False
        self.logger.debug(f"Unregistered action: {action_id}")
        return True

    def get_action(self, action_id: str) -> Optional[ActionDefinition]:
        """Retrieve an action or None."""
        return self._actions.get(action_id)

    def get_all_actions(self) -> List[ActionDefinition]:
        """List actions in insertion order."""
        return list(self._actions.values())

    def clear(self) -> None:
        self._actions.clear()

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions

    async def run_action(self, action_id: str, params: Any = None) -> Any:
        """
        Execute an action.

        Raises:
            KeyError: if no action is registered under ``action_id``
            RuntimeError: if called before ``set_context``
            ActionTimeoutError: if the handler exceeds its timeout
            ActionExecutionError: if the handler raises
        """
        action = self._actions.get(action_id)
        if action is None:
            raise KeyError(f"Action not found: {action_id}")
        if self._context is None:
            raise RuntimeError("ActionEngine context not set")

        timeout_ms = action.timeout if action.timeout is not None else self.default_timeout_ms

        with operation_context(action_id=action_id):
            if timeout_ms is None:
                return await self._invoke(action, params)
            return await self._invoke_with_timeout(action, params, timeout_ms)

    async def _invoke(self, action: ActionDefinition, params: Any) -> Any:
        try:
            result = action.handler(params, self._context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.logger.error(f"Action {action.id} failed: {e}")
            raise ActionExecutionError(action.id, e) from e
        return result

    async def _invoke_with_timeout(self, action: ActionDefinition, params: Any,
                                   timeout_ms: float) -> Any:
        try:
            result = action.handler(params, self._context)
        except Exception as e:
            self.logger.error(f"Action {action.id} failed: {e}")
            raise ActionExecutionError(action.id, e) from e

        if not inspect.isawaitable(result):
            return result

        task = asyncio.ensure_future(result)
        try:
            # shield keeps the handler running when the wait gives up
            return await asyncio.wait_for(asyncio.shield(task), timeout_ms / 1000)
        except asyncio.TimeoutError:
            if task.done() and not task.cancelled() and task.exception() is not None:
                # The handler itself raised TimeoutError
                e = task.exception()
                self.logger.error(f"Action {action.id} failed: {e}")
                raise ActionExecutionError(action.id, e) from e
            self.logger.warning(f"Action {action.id} timed out after {timeout_ms}ms")
            self.orphaned_tasks.track(task, task_name=f"action:{action.id}")
            raise ActionTimeoutError(action.id, timeout_ms) from None
        except Exception as e:
            self.logger.error(f"Action {action.id} failed: {e}")
            raise ActionExecutionError(action.id, e) from e
