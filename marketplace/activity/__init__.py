"""
User Activity Module

The service lives in `marketplace.activity.service`; it is not re-exported
here because the entity store imports the exceptions below.
"""
from .exceptions import (
    ActivityError,
    DataIntegrityWarning,
    DependencyFailure,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from .stats import OrderStatusPolicy

__all__ = [
    "ActivityError",
    "DataIntegrityWarning",
    "DependencyFailure",
    "InvalidArgument",
    "NotFound",
    "PermissionDenied",
    "Unauthenticated",
    "OrderStatusPolicy",
]
