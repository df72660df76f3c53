"""Domain exceptions for the application.

These exceptions represent business-logic errors and are automatically
converted to RFC 7807 Problem Details responses by the exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================
# Generic HTTP-shaped errors
# ============================================================


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Role not found", resource="role", resource_id=name)
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """Raised when there's a conflict with existing data."""

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class UnauthorizedError(AppException):
    """Raised when authentication is required but not provided or invalid."""

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when the caller is authenticated but may not proceed."""

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class BadRequestError(AppException):
    """Raised for general client errors."""

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class ServiceUnavailableError(AppException):
    """Raised when a required service is unavailable."""

    message = "Service temporarily unavailable"
    error_code = "service_unavailable"
    status_code = 503


class InternalError(AppException):
    """Raised when the service fails in a way the caller cannot fix."""

    message = "Internal server error"
    error_code = "internal_error"
    status_code = 500


# ============================================================
# Session and credential errors
# ============================================================


class InvalidSessionError(UnauthorizedError):
    """The token is unknown, revoked, or its user no longer exists."""

    message = "Invalid session"
    error_code = "invalid_session"


class SessionExpiredError(UnauthorizedError):
    """The session outlived its TTL; the caller must log in again."""

    message = "Session has expired"
    error_code = "session_expired"


class InvalidCredentialsError(UnauthorizedError):
    """Login or password is wrong. Never says which."""

    message = "Invalid credentials"
    error_code = "invalid_credentials"


class AccessForbiddenError(ForbiddenError):
    """Raised when a session lacks the permission an operation requires.

    Example:
        raise AccessForbiddenError(details={"required_permission": "role::write"})
    """

    message = "Access forbidden"
    error_code = "access_forbidden"


class UserBlockedError(ForbiddenError):
    """Raised when a blocked user tries to open or use a session."""

    message = "User blocked"
    error_code = "user_blocked"


class PasswordHashError(InternalError):
    """Hashing or hash parsing failed; distinct from a password mismatch."""

    message = "Generate password hash error"
    error_code = "password_hash_error"


# ============================================================
# Storage errors
# ============================================================


class EntryNotFoundError(NotFoundError):
    """An entity looked up by id or unique key does not exist."""

    message = "Entry not found"
    error_code = "entry_not_found"


class EntryAlreadyExistsError(ConflictError):
    """A unique key or edge already exists."""

    message = "Entry already exists"
    error_code = "entry_already_exists"


class EntryUpdateError(BadRequestError):
    """An update matched nothing or was rejected by the store."""

    message = "Entry update failed"
    error_code = "entry_update_failed"


class EntryDeleteError(BadRequestError):
    """A delete was rejected by the store."""

    message = "Entry delete failed"
    error_code = "entry_delete_failed"


class StorageError(ServiceUnavailableError):
    """Transport or connection failure in the graph or session store.

    Example:
        raise StorageError("Database connection failed") from exc
    """

    message = "Storage error"
    error_code = "storage_error"
