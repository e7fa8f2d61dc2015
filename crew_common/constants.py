"""Shared constants and configuration defaults for the Skeleton Crew runtime."""

RUNTIME_VERSION = "0.1.0"

# Logging defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_LOGGER_NAME = "crew"

# Host context validation
DEFAULT_HOST_CONTEXT_SIZE_WARNING_BYTES = 1024 * 1024  # 1MB

# Resource types used in validation and duplicate errors
RESOURCE_PLUGIN = "Plugin"
RESOURCE_SCREEN = "Screen"
RESOURCE_ACTION = "Action"
RESOURCE_UI_PROVIDER = "UIProvider"
