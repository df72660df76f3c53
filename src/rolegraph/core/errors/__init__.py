"""Error handling module with RFC 7807 Problem Details."""

from rolegraph.core.errors.exceptions import (
    AccessForbiddenError,
    AppException,
    BadRequestError,
    ConflictError,
    EntryAlreadyExistsError,
    EntryDeleteError,
    EntryNotFoundError,
    EntryUpdateError,
    ForbiddenError,
    InternalError,
    InvalidCredentialsError,
    InvalidSessionError,
    NotFoundError,
    PasswordHashError,
    ServiceUnavailableError,
    SessionExpiredError,
    StorageError,
    UnauthorizedError,
    UserBlockedError,
)
from rolegraph.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    register_exception_handlers,
)


__all__ = [
    "AccessForbiddenError",
    "AppException",
    "BadRequestError",
    "ConflictError",
    "EntryAlreadyExistsError",
    "EntryDeleteError",
    "EntryNotFoundError",
    "EntryUpdateError",
    "FieldError",
    "ForbiddenError",
    "InvalidCredentialsError",
    "InternalError",
    "InvalidSessionError",
    "NotFoundError",
    "PasswordHashError",
    "ProblemDetail",
    "ServiceUnavailableError",
    "SessionExpiredError",
    "StorageError",
    "UnauthorizedError",
    "UserBlockedError",
    "register_exception_handlers",
]
