"""
Runtime - lifecycle orchestrator.

Owns the state machine, creates the subsystems in a fixed order, builds
the RuntimeContext and drives plugin setup and dispose.

    UNINITIALIZED --initialize()--> INITIALIZING --ok--> INITIALIZED
    INITIALIZING --setup failed, rolled back--> UNINITIALIZED
    INITIALIZED --shutdown()--> SHUTTING_DOWN --> SHUTDOWN

The state flag is changed synchronously around every awaited section, so a
re-entrant initialize() or shutdown() sees the in-progress state and is
rejected or ignored.
"""

from typing import Any, List, Mapping, Optional

from crew_common.config import RuntimeSettings, config
from crew_common.logging import get_bound_logger

from .action_engine import ActionEngine
from .context import RuntimeContext
from .event_bus import EventBus
from .events import RUNTIME_INITIALIZED, RUNTIME_SHUTDOWN
from .host_context import create_host_view, validate_host_context
from .plugin_registry import PluginRegistry
from .screen_registry import ScreenRegistry
from .types import PluginDefinition, RuntimeState, UIProvider
from .ui_bridge import UIBridge


class Runtime:
    """
    Entry point for applications embedding the runtime.

    Example:
        runtime = Runtime(host_context={"db": db})
        runtime.register_plugin(PluginDefinition("notes", "1.0.0", setup=setup_notes))
        await runtime.initialize()
        result = await runtime.get_context().actions.run_action("notes:list")
        await runtime.shutdown()
    """

    def __init__(self, logger=None, host_context: Optional[Mapping[str, Any]] = None,
                 settings: Optional[RuntimeSettings] = None):
        self.settings = settings or config
        self.logger = logger or get_bound_logger("runtime", version=self.settings.runtime_version)
        self._state = RuntimeState.UNINITIALIZED

        # Private copy; the caller's mapping is never referenced again
        self._host = create_host_view(host_context)
        validate_host_context(self._host, self.logger, self.settings.host_context_size_warning_bytes)

        # Filled by the caller before initialize()
        self._plugin_registry = PluginRegistry(self.logger)
        self._ui_bridge = UIBridge(self.logger)

        # Created by initialize()
        self._screen_registry: Optional[ScreenRegistry] = None
        self._action_engine: Optional[ActionEngine] = None
        self._event_bus: Optional[EventBus] = None
        self._context: Optional[RuntimeContext] = None

    @property
    def state(self) -> RuntimeState:
        return self._state

    def is_initialized(self) -> bool:
        return self._state is RuntimeState.INITIALIZED

    def get_context(self) -> RuntimeContext:
        """
        Return the live context.

        Raises:
            RuntimeError: before initialize() or after shutdown()
        """
        if self._context is None:
            raise RuntimeError("Runtime not initialized")
        return self._context

    def register_plugin(self, plugin: PluginDefinition) -> None:
        """
        Register a plugin to be set up by initialize().

        Raises:
            RuntimeError: if initialize() has already been called
            ValidationError, DuplicateRegistrationError: see PluginRegistry
        """
        if self._state is not RuntimeState.UNINITIALIZED:
            raise RuntimeError("Plugins must be registered before initialization")
        self._plugin_registry.register_plugin(plugin)

    def _check_plugin_registration(self) -> None:
        # Plugins may register other plugins while setup is running
        if self._state not in (RuntimeState.UNINITIALIZED, RuntimeState.INITIALIZING):
            raise RuntimeError("Plugins must be registered before initialization")

    async def initialize(self) -> None:
        """
        Create subsystems and set up every registered plugin.

        If a plugin's setup raises, or initialize() is cancelled, the plugins
        already set up are disposed in reverse order, the runtime returns to
        UNINITIALIZED and the original error is re-raised. Calling
        initialize() again is allowed.

        Raises:
            RuntimeError: if the runtime is not UNINITIALIZED
        """
        if self._state is RuntimeState.INITIALIZED:
            raise RuntimeError("Runtime already initialized")
        if self._state is RuntimeState.INITIALIZING:
            raise RuntimeError("Runtime initialization already in progress")
        if self._state is not RuntimeState.UNINITIALIZED:
            raise RuntimeError("Runtime has been shut down")

        self._state = RuntimeState.INITIALIZING
        self.logger.info("Initializing runtime")
        registered = [plugin.name for plugin in self._plugin_registry.get_all_plugins()]

        self._screen_registry = ScreenRegistry(self.logger)
        self._action_engine = ActionEngine(
            self.logger,
            default_timeout_ms=self.settings.default_action_timeout_ms,
        )
        self._event_bus = EventBus(self.logger)

        context = RuntimeContext(
            runtime=self,
            screens=self._screen_registry,
            actions=self._action_engine,
            plugins=self._plugin_registry,
            events=self._event_bus,
            host=self._host,
            plugin_guard=self._check_plugin_registration,
            runtime_version=self.settings.runtime_version,
        )
        self._context = context
        self._action_engine.set_context(context)

        try:
            await self._plugin_registry.execute_setup(context)
        except BaseException:
            self.logger.error("Runtime initialization failed; reverting to uninitialized")
            self._revert_initialize(registered)
            raise

        try:
            await self._event_bus.emit_async(RUNTIME_INITIALIZED, {"context": context})
        except BaseException:
            # Listener errors never propagate, so this is a cancellation
            self.logger.error("Runtime initialization interrupted; disposing plugins")
            try:
                await self._plugin_registry.execute_dispose(context)
            finally:
                self._revert_initialize(registered)
            raise

        self._state = RuntimeState.INITIALIZED
        self.logger.info(
            f"Runtime initialized with {len(self._plugin_registry.get_initialized_plugins())} plugins"
        )

    def _revert_initialize(self, registered: List[str]) -> None:
        self._plugin_registry.discard_except(registered)
        self._discard_subsystems()
        self._state = RuntimeState.UNINITIALIZED

    async def shutdown(self) -> None:
        """
        Dispose plugins, tear down the UI provider and clear all registries.

        A no-op unless the runtime is INITIALIZED, so calling it twice, or
        before initialize(), is safe.
        """
        if self._state is not RuntimeState.INITIALIZED:
            self.logger.debug(f"Shutdown ignored in state {self._state.value}")
            return

        self._state = RuntimeState.SHUTTING_DOWN
        self.logger.info("Shutting down runtime")
        context = self._context

        try:
            await self._event_bus.emit_async(RUNTIME_SHUTDOWN, {"context": context})
            await self._plugin_registry.execute_dispose(context)
            await self._ui_bridge.shutdown()
        finally:
            self._screen_registry.clear()
            self._action_engine.clear()
            self._event_bus.clear()
            self._plugin_registry.clear()
            self._context = None
            self._state = RuntimeState.SHUTDOWN
            self.logger.info("Runtime shutdown complete")

    def _discard_subsystems(self) -> None:
        self._screen_registry = None
        self._action_engine = None
        self._event_bus = None
        self._context = None

    def set_ui_provider(self, provider: UIProvider) -> None:
        """
        Register the UI provider.

        Raises:
            RuntimeError: after shutdown
            ValidationError, DuplicateRegistrationError: see UIBridge
        """
        if self._state in (RuntimeState.SHUTTING_DOWN, RuntimeState.SHUTDOWN):
            raise RuntimeError("Runtime has been shut down")
        self._ui_bridge.set_provider(provider)

    def get_ui_provider(self) -> Optional[UIProvider]:
        return self._ui_bridge.get_provider()

    def render_screen(self, screen_id: str) -> Any:
        """
        Render a registered screen through the UI provider.

        Raises:
            RuntimeError: if not initialized or no provider is registered
            KeyError: if ``screen_id`` is not registered
        """
        if self._screen_registry is None:
            raise RuntimeError("Runtime not initialized")

        screen = self._screen_registry.get_screen(screen_id)
        if screen is None:
            raise KeyError(f"Screen not found: {screen_id}")

        return self._ui_bridge.render_screen(screen)

    async def __aenter__(self) -> "Runtime":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
