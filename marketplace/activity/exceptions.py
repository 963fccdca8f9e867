"""
Activity Exceptions
===================

Error kinds raised by the activity service and mapped to HTTP outcomes by the
endpoint layer.
"""

from typing import Any, Dict, Optional


class ActivityError(Exception):
    """Base exception for the activity service."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidArgument(ActivityError):
    """Raised when a subject identifier or query parameter is malformed."""

    pass


class NotFound(ActivityError):
    """Raised when the subject entity does not exist."""

    pass


class Unauthenticated(ActivityError):
    """Raised when ownership is enforced and the request carries no caller identity."""

    pass


class PermissionDenied(ActivityError):
    """Raised when the caller may not read the requested subject."""

    pass


class DependencyFailure(ActivityError):
    """
    Raised when the entity store is unreachable or a query fails.

    The message is safe to log; it is never returned to clients.
    """

    pass


class DataIntegrityWarning(ActivityError):
    """
    A broken reference inside an otherwise valid aggregation.

    Never raised: the service logs it and renders the row with a placeholder.
    """

    def __init__(self, message: str, entity: str, entity_id: Any, missing: str, missing_id: Any) -> None:
        super().__init__(
            message,
            details={
                "entity": entity,
                "entity_id": entity_id,
                "missing": missing,
                "missing_id": missing_id,
            },
        )
