"""
Introspection - read-only metadata over registered resources.

Everything returned here is deep-frozen and stripped of executable code:
action handlers and plugin setup/dispose callbacks never leave the
registries through this API.
"""

from typing import Optional, Sequence

from crew_common.freeze import deep_freeze

from .action_engine import ActionEngine
from .plugin_registry import PluginRegistry
from .screen_registry import ScreenRegistry
from .types import (
    ActionMetadata,
    IntrospectionMetadata,
    PluginMetadata,
    ScreenDefinition,
)


class IntrospectionAPI:
    """Queries exposed to plugins as ``context.introspect``."""

    def __init__(self, actions: ActionEngine, plugins: PluginRegistry,
                 screens: ScreenRegistry, runtime_version: str):
        self._actions = actions
        self._plugins = plugins
        self._screens = screens
        self._runtime_version = runtime_version

    def list_actions(self) -> Sequence[str]:
        return deep_freeze([action.id for action in self._actions.get_all_actions()])

    def get_action_definition(self, action_id: str) -> Optional[ActionMetadata]:
        action = self._actions.get_action(action_id)
        if action is None:
            return None
        return deep_freeze(ActionMetadata(id=action.id, timeout=action.timeout))

    def list_plugins(self) -> Sequence[str]:
        return deep_freeze([plugin.name for plugin in self._plugins.get_all_plugins()])

    def get_plugin_definition(self, name: str) -> Optional[PluginMetadata]:
        plugin = self._plugins.get_plugin(name)
        if plugin is None:
            return None
        return deep_freeze(PluginMetadata(
            name=plugin.name,
            version=plugin.version,
            metadata=plugin.metadata,
        ))

    def list_screens(self) -> Sequence[str]:
        return deep_freeze([screen.id for screen in self._screens.get_all_screens()])

    def get_screen_definition(self, screen_id: str) -> Optional[ScreenDefinition]:
        screen = self._screens.get_screen(screen_id)
        if screen is None:
            return None
        return deep_freeze(screen)

    def get_metadata(self) -> IntrospectionMetadata:
        """Runtime version and resource counts."""
        return IntrospectionMetadata(
            runtime_version=self._runtime_version,
            total_actions=len(self._actions),
            total_plugins=len(self._plugins),
            total_screens=len(self._screens),
        )
