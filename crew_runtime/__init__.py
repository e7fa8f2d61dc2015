"""Crew Runtime - plugin orchestration core.

Plugins contribute screens, actions and event listeners through a
RuntimeContext without importing each other.
"""

__version__ = "0.1.0"

from .types import (
    RuntimeState,
    PluginDefinition,
    ScreenDefinition,
    ActionDefinition,
    ActionMetadata,
    PluginMetadata,
    IntrospectionMetadata,
    UIProvider,
    Logger,
)
from .events import RUNTIME_INITIALIZED, RUNTIME_SHUTDOWN
from .screen_registry import ScreenRegistry
from .action_engine import ActionEngine
from .event_bus import EventBus
from .ui_bridge import UIBridge
from .plugin_registry import PluginRegistry
from .introspection import IntrospectionAPI
from .context import RuntimeContext
from .runtime import Runtime

from crew_common.exceptions import (
    CrewError,
    ValidationError,
    DuplicateRegistrationError,
    ActionTimeoutError,
    ActionExecutionError,
)
