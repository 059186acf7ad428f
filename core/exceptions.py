"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the incident engine.

- Provides clear exception hierarchy
- Carries a machine-readable code for API layers
- Includes structured context for corrective UIs

============================================================
EXCEPTION HIERARCHY
============================================================
IncidentTrackerError (base)
├── InvalidArgument
├── InvalidTransition
├── NotFound
└── PersistenceError

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence


# ============================================================
# BASE EXCEPTION
# ============================================================

class IncidentTrackerError(Exception):
    """
    Base exception for all incident engine errors.

    All exceptions carry:
    - code: machine-readable error code
    - context: structured detail for callers
    - timestamp: when the error occurred
    """

    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.code = code or self.default_code
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for an API response or a log line."""
        payload = {
            "code": self.code,
            "message": self.message,
        }
        payload.update(self.context)
        return payload


# ============================================================
# VALIDATION ERRORS
# ============================================================

class InvalidArgument(IncidentTrackerError):
    """Malformed input. Always fixable by the caller."""

    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        message: str,
        actual: Optional[Any] = None,
    ):
        context: Dict[str, Any] = {"field": field}
        if actual is not None:
            context["actual"] = str(actual)[:100]

        super().__init__(message, context=context)
        self.field = field


class InvalidTransition(IncidentTrackerError):
    """Status change is not an edge of the transition table."""

    default_code = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        valid_transitions: Sequence[str],
    ):
        valid: List[str] = list(valid_transitions)
        if valid:
            hint = f"Valid next statuses: {', '.join(valid)}."
        else:
            hint = "No transitions available from this status."

        super().__init__(
            f"Cannot change status from '{current_status}' to '{requested_status}'. {hint}",
            context={
                "current_status": current_status,
                "requested_status": requested_status,
                "valid_transitions": valid,
            },
        )
        self.current_status = current_status
        self.requested_status = requested_status
        self.valid_transitions = valid


class NotFound(IncidentTrackerError):
    """
    Resource does not exist or is not visible to the caller.

    The two cases are reported identically.
    """

    default_code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found.",
            context={"resource_type": resource_type, "resource_id": str(resource_id)},
        )
        self.resource_type = resource_type
        self.resource_id = str(resource_id)


# ============================================================
# PERSISTENCE ERRORS
# ============================================================

class PersistenceError(IncidentTrackerError):
    """Opaque wrapper for an unexpected database failure."""

    default_code = "INTERNAL_ERROR"
