"""
Structured logging for the runtime.

All runtime components log through one structlog logger named "crew",
rendered by the standard library so third-party records share the format.
Plugin and action identity travel in ``structlog.contextvars`` and are
merged into every entry written while they are bound.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import structlog

from .config import config
from .constants import DEFAULT_LOGGER_NAME

_configured = False


def _level_number(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def _pre_chain() -> List:
    # Applied to structlog and foreign stdlib records alike
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _make_handler(log_file: Optional[Path]) -> logging.Handler:
    if log_file is None:
        return logging.StreamHandler(sys.stdout)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(str(log_file), mode="a")


def configure_structlog(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[Path] = None,
    force: bool = False
) -> None:
    """
    Route structlog through the stdlib root logger.

    Only the first call takes effect unless ``force`` is set, so an
    application entry point can override the settings-driven default.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" for one object per line, "console" for key=value
        log_file: append to this file instead of stdout
        force: replace an existing configuration
    """
    global _configured
    if _configured and not force:
        return

    level = _level_number(log_level)
    pre_chain = _pre_chain()

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = _make_handler(log_file)
    handler.setLevel(level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    ))

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *pre_chain,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # force=True drops handlers left by an earlier basicConfig
    logging.basicConfig(level=level, handlers=[handler], force=True)

    _configured = True


def get_bound_logger(component: str, **default_context):
    """
    Logger for one runtime component.

    Configures logging from ``config`` on first use. Extra keyword arguments
    are bound to every entry the logger writes.

    Usage:
        logger = get_bound_logger("event_bus")
        logger.info("Subscribed", event="note:saved")
    """
    if not _configured:
        configure_structlog(
            log_level=config.get_log_level(),
            log_format=config.log_format,
            log_file=config.log_file,
        )

    return structlog.get_logger(DEFAULT_LOGGER_NAME).bind(component=component, **default_context)


def bind_request_context(**context) -> None:
    """Bind values to every entry logged from the current task until cleared."""
    if context:
        structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def operation_context(**context):
    """
    Bind ``context`` for the duration of the block.

    Example:
        with operation_context(plugin="notes"):
            await plugin.setup(ctx)
    """
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context)


def set_log_level(level: str, logger_name: Optional[str] = None) -> None:
    """Change a logger's level at runtime; the root logger's handlers follow it."""
    number = _level_number(level)
    target = logging.getLogger(logger_name)
    target.setLevel(number)

    if logger_name is None:
        for handler in target.handlers:
            handler.setLevel(number)
