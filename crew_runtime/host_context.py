"""
Host context - read-only services injected by the embedding application.

The mapping supplied to the Runtime is copied once and exposed to plugins
as a shallow read-only view: keys cannot be added, replaced or removed, but
the objects stored under them (database clients, caches, config dicts) are
handed out as-is and remain usable.
"""

import json
from typing import Any, Mapping, Optional

from crew_common.freeze import freeze_mapping


def _size_fallback(value: Any) -> Any:
    # Nested callables count as null; other objects by their attributes
    if callable(value):
        return None
    if hasattr(value, "__dict__"):
        return vars(value)
    return repr(value)


def estimate_size(value: Any) -> int:
    """Approximate size of ``value`` as UTF-8 JSON, in bytes."""
    if callable(value) and not isinstance(value, type):
        raise TypeError("callables have no serialized form")
    return len(json.dumps(value, default=_size_fallback).encode("utf-8"))


def validate_host_context(host_context: Mapping[str, Any], logger,
                          size_warning_bytes: int) -> None:
    """
    Log warnings for host values that are likely mistakes.

    Never raises and never modifies ``host_context``.
    """
    for key, value in host_context.items():
        try:
            size = estimate_size(value)
        except (TypeError, ValueError, OverflowError, RecursionError):
            logger.warning(f"Host context key '{key}' could not be serialized for size check")
        else:
            if size > size_warning_bytes:
                logger.warning(
                    f"Host context key '{key}' is large ({size} bytes); "
                    f"consider passing a service that loads it on demand"
                )

        if callable(value) and not isinstance(value, type):
            logger.warning(
                f"Host context key '{key}' is a function; "
                f"consider wrapping it in an object (e.g. {{'{key}': {{'call': fn}}}})"
            )


def create_host_view(host_context: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Copy ``host_context`` and return a read-only view of the copy."""
    if host_context is not None and not isinstance(host_context, Mapping):
        raise TypeError("host_context must be a mapping")
    return freeze_mapping(host_context)
