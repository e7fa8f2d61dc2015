"""Crew Common - shared utilities for the Skeleton Crew runtime.

Logging, configuration, the exception hierarchy and immutability helpers.
It has no dependency on crew_runtime to avoid circular imports.
"""

__version__ = "0.1.0"

from .config import RuntimeSettings, config
from .constants import RUNTIME_VERSION
from .exceptions import (
    CrewError,
    ValidationError,
    DuplicateRegistrationError,
    ActionTimeoutError,
    ActionExecutionError,
)
from .freeze import FrozenList, deep_freeze, freeze_mapping, is_frozen
from .logging import (
    configure_structlog,
    get_bound_logger,
    bind_request_context,
    clear_context,
    operation_context,
    set_log_level,
)
