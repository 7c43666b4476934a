"""Custom exceptions for TrackSubs.

This module provides the exception hierarchy used by every service:
- Structured error information
- HTTP status code mapping
- User-facing messages that never leak ownership information
- Machine-readable error codes and optional branch reasons
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any

GENERIC_ERROR_MESSAGE = "Something went wrong!"


class ErrorCode(str, Enum):
    """Machine-readable error codes for action responses."""

    # General errors (1xxx)
    INTERNAL_ERROR = "TS1000"
    UNKNOWN_ERROR = "TS1001"

    # Authentication errors (2xxx)
    UNAUTHORIZED = "TS2000"
    TOKEN_INVALID = "TS2001"
    TOKEN_REVOKED = "TS2002"

    # Authorization errors (3xxx)
    PLAN_RESTRICTED = "TS3000"

    # Validation errors (4xxx)
    VALIDATION_ERROR = "TS4000"
    INVALID_INPUT = "TS4001"
    IMMUTABLE_FIELD = "TS4003"

    # Resource errors (5xxx)
    RESOURCE_NOT_FOUND = "TS5000"
    USER_NOT_FOUND = "TS5001"
    SUBSCRIPTION_NOT_FOUND = "TS5002"
    PAYMENT_METHOD_NOT_FOUND = "TS5003"

    # Store errors (6xxx)
    STORE_UNAVAILABLE = "TS6000"
    CONFLICT = "TS6001"
    COUNTER_UNDERFLOW = "TS6002"


class TrackSubsException(Exception):
    """Base exception for all TrackSubs errors.

    Attributes:
        message: Human-readable error message (logged, not always shown).
        error_code: Machine-readable error code.
        http_status: HTTP status code for API responses.
        details: Additional context for debugging.
        user_message: Message placed in the ERROR result.
        reason: Short machine-readable key for callers that need to branch.
    """

    message: str = "An unexpected error occurred"
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    user_message: str | None = None
    reason: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: ErrorCode | None = None,
        http_status: HTTPStatus | None = None,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            http_status: HTTP status code for API responses.
            details: Additional context for debugging.
            user_message: User-friendly message for end users.
            reason: Machine-readable branch key (e.g. ``ALREADY_ADDED``).
        """
        self.message = message or self.__class__.message
        self.error_code = error_code or self.__class__.error_code
        self.http_status = http_status or self.__class__.http_status
        self.details = details or {}
        self.user_message = user_message or self.__class__.user_message or self.message
        self.reason = reason or self.__class__.reason
        super().__init__(self.message)

    @property
    def result_message(self) -> str:
        """Message carried by the ERROR variant of an action response."""
        return self.reason or self.user_message

    def __str__(self) -> str:
        """String representation including error code."""
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code.value}, "
            f"http_status={self.http_status.value}, "
            f"details={self.details!r}"
            f")"
        )


# ============================================================================
# Authentication Exceptions
# ============================================================================


class UnauthorizedError(TrackSubsException):
    """No resolvable identity for the request."""

    message = "User is not authorized."
    error_code = ErrorCode.UNAUTHORIZED
    http_status = HTTPStatus.UNAUTHORIZED


class InvalidTokenError(UnauthorizedError):
    """Invalid, expired or malformed session token."""

    message = "Invalid or malformed session token"
    error_code = ErrorCode.TOKEN_INVALID
    user_message = "User is not authorized."


class TokenRevokedError(UnauthorizedError):
    """Session token has been revoked."""

    message = "Session token has been revoked"
    error_code = ErrorCode.TOKEN_REVOKED
    user_message = "User is not authorized."


# ============================================================================
# Authorization Exceptions
# ============================================================================


class PlanRestrictionError(TrackSubsException):
    """Feature is not available on the user's current plan."""

    message = "Not available in current plan"
    error_code = ErrorCode.PLAN_RESTRICTED
    http_status = HTTPStatus.FORBIDDEN
    reason = "PLAN_UPGRADE_REQUIRED"


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(TrackSubsException):
    """Validation-related errors."""

    message = "Validation error"
    error_code = ErrorCode.VALIDATION_ERROR
    http_status = HTTPStatus.BAD_REQUEST

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error message.
            field: Name of the field that failed validation.
            value: The invalid value.
            constraint: Description of the constraint that was violated.
            **kwargs: Additional arguments passed to parent.
        """
        details = kwargs.pop("details", {}) or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if constraint:
            details["constraint"] = constraint

        super().__init__(message, details=details, **kwargs)


class InvalidInputError(ValidationError):
    """Invalid input data."""

    message = "Invalid input data"
    error_code = ErrorCode.INVALID_INPUT


class ImmutableFieldError(ValidationError):
    """Field cannot be changed through the requested operation."""

    message = "Field cannot be modified through this operation"
    error_code = ErrorCode.IMMUTABLE_FIELD


# ============================================================================
# Resource Exceptions
# ============================================================================


class NotFoundError(TrackSubsException):
    """Resource not found, or owned by another user."""

    message = "Resource not found"
    error_code = ErrorCode.RESOURCE_NOT_FOUND
    http_status = HTTPStatus.NOT_FOUND

    def __init__(
        self,
        message: str | None = None,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize not found error.

        Args:
            message: Error message.
            resource_type: Type of resource not found.
            resource_id: ID of the resource.
            **kwargs: Additional arguments passed to parent.
        """
        details = kwargs.pop("details", {}) or {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        if not message and resource_type:
            message = f"{resource_type} not found"

        super().__init__(message, details=details, **kwargs)


class UserNotFoundError(NotFoundError):
    """User not found."""

    message = "No such user found."
    error_code = ErrorCode.USER_NOT_FOUND


class SubscriptionNotFoundError(NotFoundError):
    """Subscription not found for the requesting user."""

    message = "Subscription not found"
    error_code = ErrorCode.SUBSCRIPTION_NOT_FOUND


class PaymentMethodNotFoundError(NotFoundError):
    """Payment method not found for the requesting user."""

    message = "Payment method not found"
    error_code = ErrorCode.PAYMENT_METHOD_NOT_FOUND


# ============================================================================
# Store Exceptions
# ============================================================================


class ConflictError(TrackSubsException):
    """Unique constraint or concurrent modification conflict."""

    message = "Conflicting change"
    error_code = ErrorCode.CONFLICT
    http_status = HTTPStatus.CONFLICT


class TransientStoreError(TrackSubsException):
    """Connection or transaction failure in the storage backend."""

    message = "Storage backend unavailable"
    error_code = ErrorCode.STORE_UNAVAILABLE
    http_status = HTTPStatus.SERVICE_UNAVAILABLE
    user_message = GENERIC_ERROR_MESSAGE


class CounterUnderflowError(TrackSubsException):
    """A usage counter would drop below zero.

    Raised only when the counter/row pairing is already broken upstream.
    """

    message = "Usage counter would become negative"
    error_code = ErrorCode.COUNTER_UNDERFLOW
    http_status = HTTPStatus.INTERNAL_SERVER_ERROR
    user_message = GENERIC_ERROR_MESSAGE


# ============================================================================
# Exception to HTTP Status Mapping
# ============================================================================


def get_http_status_for_exception(exc: Exception) -> HTTPStatus:
    """Get the appropriate HTTP status code for an exception.

    Args:
        exc: The exception to map.

    Returns:
        The appropriate HTTP status code.
    """
    if isinstance(exc, TrackSubsException):
        return exc.http_status

    exception_status_map: dict[type, HTTPStatus] = {
        ValueError: HTTPStatus.BAD_REQUEST,
        TypeError: HTTPStatus.BAD_REQUEST,
        PermissionError: HTTPStatus.FORBIDDEN,
        TimeoutError: HTTPStatus.SERVICE_UNAVAILABLE,
    }

    for exc_type, status in exception_status_map.items():
        if isinstance(exc, exc_type):
            return status

    return HTTPStatus.INTERNAL_SERVER_ERROR
