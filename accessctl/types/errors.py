# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Error types and error codes for accessctl.
Provides structured error handling across all packages.
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(str, Enum):
    """Standard error codes used across accessctl."""
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INTERNAL_ERROR = "internal_error"
    VALIDATION_FAILED = "validation_failed"
    CONFIGURATION_ERROR = "configuration_error"
    POLICY_ERROR = "policy_error"

    def __str__(self) -> str:
        return self.value


# Error code constants for easy import
UNAUTHORIZED = ErrorCode.UNAUTHORIZED
FORBIDDEN = ErrorCode.FORBIDDEN
INTERNAL_ERROR = ErrorCode.INTERNAL_ERROR
VALIDATION_FAILED = ErrorCode.VALIDATION_FAILED
CONFIGURATION_ERROR = ErrorCode.CONFIGURATION_ERROR
POLICY_ERROR = ErrorCode.POLICY_ERROR


class AccessControlError(Exception):
    """Base exception for all accessctl errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            'error': self.error_code.value,
            'message': self.message,
            'details': self.details
        }

        if self.cause:
            result['cause'] = str(self.cause)

        return result

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class UnauthorizedError(AccessControlError):
    """Raised when the caller's identity, session, tenant or role cannot be established."""

    def __init__(
        self,
        message: str = "Unauthorized or incomplete session",
        missing: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, UNAUTHORIZED, details)
        self.missing = missing

        if missing:
            self.details['missing'] = missing


class ForbiddenError(AccessControlError):
    """Raised when a known caller presents credentials that grant nothing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, FORBIDDEN, details)


class ValidationError(AccessControlError):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, VALIDATION_FAILED, details)
        self.field = field
        self.value = value

        if field:
            self.details['field'] = field
        if value is not None:
            self.details['value'] = str(value)


class ConfigurationError(AccessControlError):
    """Raised when there's a configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, CONFIGURATION_ERROR, details)
        self.config_key = config_key
        self.config_value = config_value

        if config_key:
            self.details['config_key'] = config_key
        if config_value is not None:
            self.details['config_value'] = str(config_value)


class PolicyEvaluationError(AccessControlError):
    """
    Raised when a native predicate fails while a rule is being evaluated.

    This signals a bug in the policy itself and is never turned into a deny.
    """

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        action: Optional[str] = None,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, POLICY_ERROR, details, cause)
        self.resource = resource
        self.action = action

        if resource:
            self.details['resource'] = resource
        if action:
            self.details['action'] = action


# Error mapping for HTTP status codes
ERROR_CODE_TO_HTTP_STATUS = {
    UNAUTHORIZED: 401,
    FORBIDDEN: 403,
    INTERNAL_ERROR: 500,
    VALIDATION_FAILED: 422,
    CONFIGURATION_ERROR: 500,
    POLICY_ERROR: 500,
}


def get_http_status(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_HTTP_STATUS.get(error_code, 500)

