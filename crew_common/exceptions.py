"""Common exception classes for the Skeleton Crew runtime.

Provides the hierarchy of domain errors raised by the registries and the
action engine. Programmer errors (unknown ids, calls in the wrong lifecycle
state) use the builtin KeyError / RuntimeError instead.
"""

from typing import Any, Dict, Optional


class CrewError(Exception):
    """Base exception for all runtime domain errors."""

    def __init__(self, message: str, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured reporting."""
        result = {"message": self.message}
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(CrewError):
    """Raised when a registration is missing a field or has a malformed one."""

    def __init__(self, resource_type: str, field: str,
                 resource_id: Optional[str] = None, **kwargs):
        if resource_id:
            message = f"Validation failed for {resource_type} '{resource_id}': missing or invalid field '{field}'"
        else:
            message = f"Validation failed for {resource_type}: missing or invalid field '{field}'"
        super().__init__(message, code="VALIDATION_ERROR", **kwargs)
        self.resource_type = resource_type
        self.field = field
        self.resource_id = resource_id


class DuplicateRegistrationError(CrewError):
    """Raised when an identifier is already registered."""

    def __init__(self, resource_type: str, identifier: str, **kwargs):
        message = f"{resource_type} with id '{identifier}' is already registered"
        super().__init__(message, code="DUPLICATE_REGISTRATION", **kwargs)
        self.resource_type = resource_type
        self.identifier = identifier


class ActionTimeoutError(CrewError):
    """Raised when an action handler exceeds its timeout."""

    def __init__(self, action_id: str, timeout_ms: float, **kwargs):
        message = f"Action '{action_id}' timed out after {timeout_ms}ms"
        super().__init__(message, code="ACTION_TIMEOUT", **kwargs)
        self.action_id = action_id
        self.timeout_ms = timeout_ms


class ActionExecutionError(CrewError):
    """Raised when an action handler raises. The original error is kept as ``cause``."""

    def __init__(self, action_id: str, cause: BaseException, **kwargs):
        message = f"Action '{action_id}' failed: {cause}"
        super().__init__(message, code="ACTION_EXECUTION_ERROR", **kwargs)
        self.action_id = action_id
        self.cause = cause
        self.__cause__ = cause
