"""
Runtime Context - the facade handed to plugins and action handlers.

Plugins never touch the subsystems directly. Each namespace below exposes
only the operations plugins are allowed to use, and reads come back as
copies, frozen views or unregister closures, never as the live stores.
"""

from typing import Any, Callable, List, Mapping, Optional, TYPE_CHECKING

from .action_engine import ActionEngine
from .event_bus import EventBus
from .introspection import IntrospectionAPI
from .plugin_registry import PluginRegistry
from .screen_registry import ScreenRegistry
from .types import (
    ActionDefinition,
    EventHandler,
    PluginDefinition,
    ScreenDefinition,
    Unsubscribe,
)

if TYPE_CHECKING:
    from .runtime import Runtime


class ScreensAPI:
    """``context.screens``"""

    def __init__(self, registry: ScreenRegistry):
        self._registry = registry

    def register_screen(self, screen: ScreenDefinition) -> Unsubscribe:
        return self._registry.register_screen(screen)

    def get_screen(self, screen_id: str) -> Optional[ScreenDefinition]:
        return self._registry.get_screen(screen_id)

    def get_all_screens(self) -> List[ScreenDefinition]:
        return self._registry.get_all_screens()


class ActionsAPI:
    """``context.actions``"""

    def __init__(self, engine: ActionEngine):
        self._engine = engine

    def register_action(self, action: ActionDefinition) -> Unsubscribe:
        return self._engine.register_action(action)

    async def run_action(self, action_id: str, params: Any = None) -> Any:
        return await self._engine.run_action(action_id, params)


class PluginsAPI:
    """``context.plugins``

    ``guard`` raises when the runtime no longer accepts plugin registration.
    """

    def __init__(self, registry: PluginRegistry, guard: Callable[[], None]):
        self._registry = registry
        self._guard = guard

    def register_plugin(self, plugin: PluginDefinition) -> None:
        self._guard()
        self._registry.register_plugin(plugin)

    def get_plugin(self, name: str) -> Optional[PluginDefinition]:
        return self._registry.get_plugin(name)

    def get_all_plugins(self) -> List[PluginDefinition]:
        return self._registry.get_all_plugins()

    def get_initialized_plugins(self) -> List[str]:
        return self._registry.get_initialized_plugins()


class EventsAPI:
    """``context.events``"""

    def __init__(self, bus: EventBus):
        self._bus = bus

    def emit(self, event: str, data: Any = None) -> None:
        self._bus.emit(event, data)

    async def emit_async(self, event: str, data: Any = None) -> None:
        await self._bus.emit_async(event, data)

    def on(self, event: str, handler: EventHandler) -> Unsubscribe:
        return self._bus.on(event, handler)


class RuntimeContext:
    """
    Everything a plugin can reach.

    Attributes:
        screens: screen registration and lookup
        actions: action registration and execution
        plugins: plugin registration (during setup only) and lookup
        events: publish/subscribe
        host: read-only view of the host context
        introspect: frozen metadata queries
    """

    def __init__(self, runtime: "Runtime", screens: ScreenRegistry, actions: ActionEngine,
                 plugins: PluginRegistry, events: EventBus, host: Mapping[str, Any],
                 plugin_guard: Callable[[], None], runtime_version: str):
        self._runtime = runtime
        self.screens = ScreensAPI(screens)
        self.actions = ActionsAPI(actions)
        self.plugins = PluginsAPI(plugins, plugin_guard)
        self.events = EventsAPI(events)
        self.host = host
        self.introspect = IntrospectionAPI(actions, plugins, screens, runtime_version)

    def get_runtime(self) -> "Runtime":
        return self._runtime

    def __repr__(self) -> str:
        return f"RuntimeContext(host_keys={list(self.host)})"
