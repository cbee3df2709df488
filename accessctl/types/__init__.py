"""
Shared types for accessctl.
"""

from .errors import (
    ErrorCode,
    AccessControlError,
    UnauthorizedError,
    ForbiddenError,
    ValidationError,
    ConfigurationError,
    PolicyEvaluationError,
    get_http_status,
)

__all__ = [
    "ErrorCode",
    "AccessControlError",
    "UnauthorizedError",
    "ForbiddenError",
    "ValidationError",
    "ConfigurationError",
    "PolicyEvaluationError",
    "get_http_status",
]
