"""Shared configuration management using pydantic-settings.

Provides centralized runtime configuration with environment variable
support. Every Runtime reads from the module-level ``config`` instance
unless a settings object is passed explicitly.

Environment Variables:
    CREW_LOG_LEVEL - Logging level (default: INFO)
    CREW_LOG_FORMAT - Log format: json or console (default: console)
    CREW_LOG_FILE - Optional log file path (default: stdout)
    CREW_DEFAULT_ACTION_TIMEOUT_MS - Timeout applied to actions registered
        without one, in milliseconds (default: unset)
    CREW_HOST_CONTEXT_SIZE_WARNING_BYTES - Serialized size above which a host
        context value triggers a warning (default: 1048576)

Example:
    export CREW_LOG_LEVEL=DEBUG
    export CREW_DEFAULT_ACTION_TIMEOUT_MS=5000
    python my_app.py
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .constants import (
    DEFAULT_HOST_CONTEXT_SIZE_WARNING_BYTES,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    RUNTIME_VERSION,
)


class RuntimeSettings(BaseSettings):
    """Configuration shared by every Runtime instance."""

    # Logging configuration
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: Literal["json", "console"] = DEFAULT_LOG_FORMAT
    log_file: Optional[Path] = None

    # Action execution
    default_action_timeout_ms: Optional[float] = Field(
        default=None,
        description="Timeout for actions registered without one (milliseconds)"
    )

    # Host context validation
    host_context_size_warning_bytes: int = DEFAULT_HOST_CONTEXT_SIZE_WARNING_BYTES

    # Reported by introspection
    runtime_version: str = RUNTIME_VERSION

    model_config = {
        "env_prefix": "CREW_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @field_validator("default_action_timeout_ms")
    @classmethod
    def check_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Reject zero or negative default timeouts."""
        if v is not None and v <= 0:
            raise ValueError("default_action_timeout_ms must be positive")
        return v

    def get_log_level(self) -> str:
        """Get log level string for structlog."""
        return self.log_level.upper()

    def __str__(self) -> str:
        return (
            f"RuntimeSettings(log_level={self.log_level}, "
            f"log_format={self.log_format}, "
            f"default_action_timeout_ms={self.default_action_timeout_ms})"
        )


# Global configuration instance
config = RuntimeSettings()
