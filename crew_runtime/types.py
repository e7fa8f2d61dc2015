"""
Runtime Type Definitions

Definitions, lifecycle state and the interfaces shared by the runtime
subsystems and the plugins that use them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Union, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from .context import RuntimeContext

SetupCallback = Callable[["RuntimeContext"], Union[None, Awaitable[None]]]
ActionHandler = Callable[[Any, "RuntimeContext"], Any]
EventHandler = Callable[[Any], Any]
Unsubscribe = Callable[[], None]


class RuntimeState(Enum):
    """Lifecycle states of a Runtime."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    SHUTTING_DOWN = "shutting_down"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class PluginDefinition:
    """A named, versioned unit contributing screens, actions and listeners."""
    name: str
    version: str
    setup: SetupCallback
    dispose: Optional[SetupCallback] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScreenDefinition:
    """A UI descriptor. ``component`` is opaque to the runtime."""
    id: str
    title: str
    component: Any


@dataclass(frozen=True)
class ActionDefinition:
    """An invocable operation. ``timeout`` is in milliseconds."""
    id: str
    handler: ActionHandler
    timeout: Optional[float] = None


@dataclass(frozen=True)
class ActionMetadata:
    """Introspection view of an action; the handler is never exposed."""
    id: str
    timeout: Optional[float] = None


@dataclass(frozen=True)
class PluginMetadata:
    """Introspection view of a plugin; setup/dispose are never exposed."""
    name: str
    version: str
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IntrospectionMetadata:
    """Runtime-wide statistics."""
    runtime_version: str
    total_actions: int
    total_plugins: int
    total_screens: int


class Logger(Protocol):
    """Anything with the four level methods taking a message string.

    ``logging.Logger`` and structlog bound loggers both qualify.
    """

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...


@runtime_checkable
class UIProvider(Protocol):
    """
    Rendering backend implemented outside the runtime.

    ``unmount`` is optional; when present it may be sync or async.
    """

    def mount(self, target: Any, context: "RuntimeContext") -> Any:
        """Attach the UI to ``target``."""
        ...

    def render_screen(self, screen: ScreenDefinition) -> Any:
        """Render a screen and return whatever the backend produces."""
        ...
