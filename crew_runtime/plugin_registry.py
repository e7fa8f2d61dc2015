"""
Plugin Registry - plugin definitions and their setup/dispose lifecycle.

Setup runs plugins one at a time in registration order. If one fails, the
plugins that already finished setup are disposed in reverse order before
the original error is re-raised, so a failed initialization never leaves
live plugins behind.
"""

import inspect
from typing import Dict, List, Optional, TYPE_CHECKING

from crew_common.constants import RESOURCE_PLUGIN
from crew_common.exceptions import DuplicateRegistrationError, ValidationError
from crew_common.logging import get_bound_logger, operation_context

from .types import PluginDefinition

if TYPE_CHECKING:
    from .context import RuntimeContext


async def _call_lifecycle(callback, context) -> None:
    result = callback(context)
    if inspect.isawaitable(result):
        await result


class PluginRegistry:
    """In-memory registry of plugins plus the two-phase lifecycle."""

    def __init__(self, logger=None):
        self._plugins: Dict[str, PluginDefinition] = {}
        # Set-up plugins, in the order their setup completed
        self._initialized: List[PluginDefinition] = []
        self.logger = logger or get_bound_logger("plugin_registry")

    def register_plugin(self, plugin: PluginDefinition) -> None:
        """
        Register a plugin by name.

        Raises:
            ValidationError: if name, version, setup or dispose is malformed
            DuplicateRegistrationError: if the name is already registered
        """
        self._validate(plugin)

        if plugin.name in self._plugins:
            raise DuplicateRegistrationError(RESOURCE_PLUGIN, plugin.name)

        self._plugins[plugin.name] = plugin
        self.logger.debug(f"Registered plugin: {plugin.name}@{plugin.version}")

    def _validate(self, plugin) -> None:
        name = getattr(plugin, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(RESOURCE_PLUGIN, "name")
        version = getattr(plugin, "version", None)
        if not isinstance(version, str) or not version.strip():
            raise ValidationError(RESOURCE_PLUGIN, "version", name)
        if not callable(getattr(plugin, "setup", None)):
            raise ValidationError(RESOURCE_PLUGIN, "setup", name)
        dispose = getattr(plugin, "dispose", None)
        if dispose is not None and not callable(dispose):
            raise ValidationError(RESOURCE_PLUGIN, "dispose", name)

    def get_plugin(self, name: str) -> Optional[PluginDefinition]:
        """Retrieve a plugin or None."""
        return self._plugins.get(name)

    def get_all_plugins(self) -> List[PluginDefinition]:
        """List plugins in registration order."""
        return list(self._plugins.values())

    def get_initialized_plugins(self) -> List[str]:
        """Names of plugins whose setup completed, in initialization order."""
        return [plugin.name for plugin in self._initialized]

    async def execute_setup(self, context: "RuntimeContext") -> None:
        """
        Run every plugin's setup sequentially.

        Plugins registered while setup is running are set up after the ones
        already queued.

        Raises:
            The first setup error, after rolling back completed plugins
        """
        index = 0
        while index < len(self._plugins):
            plugin = list(self._plugins.values())[index]
            index += 1

            self.logger.debug(f"Setting up plugin: {plugin.name}")
            try:
                with operation_context(plugin=plugin.name):
                    await _call_lifecycle(plugin.setup, context)
            except BaseException as e:
                # Cancellation rolls back too
                self.logger.error(f"Plugin {plugin.name} setup failed: {e}")
                await self._rollback(context)
                raise

            self._initialized.append(plugin)
            self.logger.info(f"Plugin initialized: {plugin.name}@{plugin.version}")

    async def _rollback(self, context: "RuntimeContext") -> None:
        """Dispose set-up plugins in reverse, popping them off the stack."""
        if self._initialized:
            self.logger.warning(f"Rolling back {len(self._initialized)} initialized plugins")

        while self._initialized:
            plugin = self._initialized.pop()
            if plugin.dispose is None:
                continue
            try:
                with operation_context(plugin=plugin.name):
                    await _call_lifecycle(plugin.dispose, context)
            except Exception as e:
                self.logger.error(f"Plugin {plugin.name} dispose failed during rollback: {e}")

    async def execute_dispose(self, context: "RuntimeContext") -> None:
        """Dispose initialized plugins in reverse order. Errors are logged, not raised."""
        for plugin in reversed(self._initialized):
            if plugin.dispose is None:
                continue
            try:
                with operation_context(plugin=plugin.name):
                    await _call_lifecycle(plugin.dispose, context)
                self.logger.debug(f"Plugin disposed: {plugin.name}")
            except Exception as e:
                self.logger.error(f"Plugin {plugin.name} dispose failed: {e}")

        self._initialized.clear()

    def discard_except(self, names: List[str]) -> None:
        """Drop definitions not in ``names`` (plugins added by a failed setup run)."""
        keep = set(names)
        for name in [n for n in self._plugins if n not in keep]:
            del self._plugins[name]

    def clear(self) -> None:
        """Remove all definitions and initialized-state."""
        self._plugins.clear()
        self._initialized.clear()

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins
