"""
Tests for ActionEngine registration and execution.

Covers sync/async handlers, error wrapping, caller-side timeouts and the
background handling of handlers that outlive their caller.
"""

import asyncio
from types import SimpleNamespace

import pytest

from crew_common.exceptions import (
    ActionExecutionError,
    ActionTimeoutError,
    DuplicateRegistrationError,
    ValidationError,
)
from crew_runtime.action_engine import ActionEngine
from crew_runtime.types import ActionDefinition

from helpers import error_messages, warning_messages


@pytest.fixture
def context():
    return SimpleNamespace(name="context")


@pytest.fixture
def engine(mock_logger, context):
    engine = ActionEngine(mock_logger)
    engine.set_context(context)
    return engine


def noop(params, context):
    return None


class TestRegistration:
    """Registration discipline for actions."""

    def test_register_and_get(self, engine):
        action = ActionDefinition(id="notes:list", handler=noop)
        engine.register_action(action)

        assert engine.get_action("notes:list") is action
        assert "notes:list" in engine
        assert len(engine) == 1

    def test_get_unknown_returns_none(self, engine):
        assert engine.get_action("missing") is None

    def test_get_all_actions_in_order(self, engine):
        for action_id in ("c", "a", "b"):
            engine.register_action(ActionDefinition(id=action_id, handler=noop))

        assert [a.id for a in engine.get_all_actions()] == ["c", "a", "b"]

    def test_duplicate_rejected(self, engine):
        engine.register_action(ActionDefinition(id="echo", handler=noop))

        with pytest.raises(DuplicateRegistrationError):
            engine.register_action(ActionDefinition(id="echo", handler=noop))
        assert len(engine) == 1

    @pytest.mark.parametrize("field,action", [
        ("id", ActionDefinition(id="", handler=noop)),
        ("id", ActionDefinition(id=None, handler=noop)),
        ("handler", ActionDefinition(id="x", handler=None)),
        ("handler", ActionDefinition(id="x", handler="not callable")),
        ("timeout", ActionDefinition(id="x", handler=noop, timeout=0)),
        ("timeout", ActionDefinition(id="x", handler=noop, timeout=-5)),
        ("timeout", ActionDefinition(id="x", handler=noop, timeout="10")),
        ("timeout", ActionDefinition(id="x", handler=noop, timeout=True)),
    ])
    def test_invalid_action(self, engine, field, action):
        with pytest.raises(ValidationError) as exc_info:
            engine.register_action(action)

        assert exc_info.value.field == field
        assert exc_info.value.resource_type == "Action"
        assert len(engine) == 0

    def test_fractional_timeout_accepted(self, engine):
        engine.register_action(ActionDefinition(id="x", handler=noop, timeout=0.5))
        assert engine.get_action("x").timeout == 0.5

    def test_unregister_closure_is_idempotent(self, engine):
        unregister = engine.register_action(ActionDefinition(id="x", handler=noop))
        unregister()
        unregister()

        assert engine.get_action("x") is None
        assert engine.unregister_action("x") is False

    def test_clear(self, engine):
        engine.register_action(ActionDefinition(id="x", handler=noop))
        engine.clear()
        assert engine.get_all_actions() == []


class TestRunAction:
    """Execution of sync and async handlers."""

    @pytest.mark.asyncio
    async def test_sync_handler_result(self, engine):
        engine.register_action(ActionDefinition(id="echo", handler=lambda params, ctx: params))

        assert await engine.run_action("echo", 42) == 42

    @pytest.mark.asyncio
    async def test_async_handler_result(self, engine):
        async def handler(params, ctx):
            await asyncio.sleep(0)
            return {"doubled": params * 2}

        engine.register_action(ActionDefinition(id="double", handler=handler))

        assert await engine.run_action("double", 21) == {"doubled": 42}

    @pytest.mark.asyncio
    async def test_params_default_to_none(self, engine):
        engine.register_action(ActionDefinition(id="echo", handler=lambda params, ctx: params))

        assert await engine.run_action("echo") is None

    @pytest.mark.asyncio
    async def test_handler_receives_context(self, engine, context):
        seen = []
        engine.register_action(ActionDefinition(id="ctx", handler=lambda p, ctx: seen.append(ctx)))

        await engine.run_action("ctx")

        assert seen == [context]

    @pytest.mark.asyncio
    async def test_unknown_action_raises_key_error(self, engine):
        with pytest.raises(KeyError, match="Action not found: missing"):
            await engine.run_action("missing")

    @pytest.mark.asyncio
    async def test_context_required(self, mock_logger):
        engine = ActionEngine(mock_logger)
        engine.register_action(ActionDefinition(id="x", handler=noop))

        with pytest.raises(RuntimeError, match="context not set"):
            await engine.run_action("x")


class TestErrors:
    """Handler failures are wrapped with the action id and original cause."""

    @pytest.mark.asyncio
    async def test_sync_error_wrapped(self, engine, mock_logger):
        original = ValueError("bad input")

        def handler(params, ctx):
            raise original

        engine.register_action(ActionDefinition(id="fails", handler=handler))

        with pytest.raises(ActionExecutionError) as exc_info:
            await engine.run_action("fails")

        assert exc_info.value.action_id == "fails"
        assert exc_info.value.cause is original
        assert exc_info.value.__cause__ is original
        assert "Action fails failed: bad input" in error_messages(mock_logger)

    @pytest.mark.asyncio
    async def test_async_error_wrapped(self, engine):
        async def handler(params, ctx):
            raise LookupError("gone")

        engine.register_action(ActionDefinition(id="fails", handler=handler))

        with pytest.raises(ActionExecutionError) as exc_info:
            await engine.run_action("fails")

        assert isinstance(exc_info.value.cause, LookupError)

    @pytest.mark.asyncio
    async def test_error_wrapped_when_timeout_configured(self, engine):
        async def handler(params, ctx):
            raise ValueError("early")

        engine.register_action(ActionDefinition(id="fails", handler=handler, timeout=1000))

        with pytest.raises(ActionExecutionError) as exc_info:
            await engine.run_action("fails")

        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_handler_raising_timeout_error_is_execution_error(self, engine):
        async def handler(params, ctx):
            raise asyncio.TimeoutError()

        engine.register_action(ActionDefinition(id="own-timeout", handler=handler, timeout=1000))

        with pytest.raises(ActionExecutionError):
            await engine.run_action("own-timeout")


class TestTimeouts:
    """Caller-side timeouts do not cancel the handler."""

    @pytest.mark.asyncio
    async def test_slow_handler_times_out(self, engine, mock_logger):
        release = asyncio.Event()

        async def handler(params, ctx):
            await release.wait()
            return "late"

        engine.register_action(ActionDefinition(id="slow", handler=handler, timeout=5))

        with pytest.raises(ActionTimeoutError) as exc_info:
            await engine.run_action("slow")

        assert exc_info.value.action_id == "slow"
        assert exc_info.value.timeout_ms == 5
        assert str(exc_info.value) == "Action 'slow' timed out after 5ms"
        assert "Action slow timed out after 5ms" in warning_messages(mock_logger)

        release.set()
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_handler_keeps_running_after_timeout(self, engine):
        release = asyncio.Event()
        finished = []

        async def handler(params, ctx):
            await release.wait()
            finished.append(params)
            return "late"

        engine.register_action(ActionDefinition(id="slow", handler=handler, timeout=5))

        with pytest.raises(ActionTimeoutError):
            await engine.run_action("slow", "payload")

        assert len(engine.orphaned_tasks) == 1

        release.set()
        await asyncio.sleep(0.01)

        assert finished == ["payload"]
        assert len(engine.orphaned_tasks) == 0

    @pytest.mark.asyncio
    async def test_late_failure_is_logged(self, engine, mock_logger):
        release = asyncio.Event()

        async def handler(params, ctx):
            await release.wait()
            raise RuntimeError("too late")

        engine.register_action(ActionDefinition(id="slow", handler=handler, timeout=5))

        with pytest.raises(ActionTimeoutError):
            await engine.run_action("slow")

        release.set()
        await asyncio.sleep(0.01)

        assert "Task action:slow failed for action_engine: too late" in error_messages(mock_logger)

    @pytest.mark.asyncio
    async def test_fast_handler_within_timeout(self, engine):
        async def handler(params, ctx):
            return params + 1

        engine.register_action(ActionDefinition(id="fast", handler=handler, timeout=1000))

        assert await engine.run_action("fast", 1) == 2
        assert len(engine.orphaned_tasks) == 0

    @pytest.mark.asyncio
    async def test_sync_handler_with_timeout_returns_directly(self, engine):
        engine.register_action(ActionDefinition(id="sync", handler=lambda p, ctx: "done", timeout=1))

        assert await engine.run_action("sync") == "done"

    @pytest.mark.asyncio
    async def test_default_timeout_applies(self, mock_logger, context):
        engine = ActionEngine(mock_logger, default_timeout_ms=5)
        engine.set_context(context)
        release = asyncio.Event()

        async def handler(params, ctx):
            await release.wait()

        engine.register_action(ActionDefinition(id="slow", handler=handler))

        with pytest.raises(ActionTimeoutError) as exc_info:
            await engine.run_action("slow")

        assert exc_info.value.timeout_ms == 5

        release.set()
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_action_timeout_overrides_default(self, mock_logger, context):
        engine = ActionEngine(mock_logger, default_timeout_ms=5)
        engine.set_context(context)

        async def handler(params, ctx):
            await asyncio.sleep(0.02)
            return "ok"

        engine.register_action(ActionDefinition(id="patient", handler=handler, timeout=2000))

        assert await engine.run_action("patient") == "ok"
