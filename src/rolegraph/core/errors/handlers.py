"""Exception handlers rendering RFC 7807 problem details.

Every error body carries ``type`` (``urn:rolegraph:error:<code>``),
``title``, ``status``, ``detail`` and ``instance``, plus the request ID
when one was assigned. Extra keys from ``AppException.details`` (for
example ``required_permission`` on a forbidden admin action) are merged
into the top level of the body.
"""

from typing import TYPE_CHECKING, Any, cast

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from rolegraph.core.errors.exceptions import AppException


if TYPE_CHECKING:
    from starlette.types import ExceptionHandler


logger = structlog.get_logger()

ERROR_TYPE_PREFIX = "urn:rolegraph:error:"


class FieldError(BaseModel):
    """One failed field in a rejected request body or query."""

    field: str
    message: str
    type: str | None = None


class ProblemDetail(BaseModel):
    """RFC 7807 response body."""

    model_config = ConfigDict(extra="allow")

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[FieldError] | None = None
    request_id: str | None = None


def problem_response(
    request: Request,
    status_code: int,
    error_code: str,
    detail: str,
    *,
    title: str | None = None,
    errors: list[FieldError] | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a problem-details JSON response for ``request``."""
    problem = ProblemDetail(
        type=f"{ERROR_TYPE_PREFIX}{error_code}",
        title=title or error_code.replace("_", " ").title(),
        status=status_code,
        detail=detail,
        instance=request.url.path,
        errors=errors,
        request_id=getattr(request.state, "request_id", None),
    )
    body = problem.model_dump(exclude_none=True)
    for key, value in (extra or {}).items():
        body.setdefault(key, value)
    return JSONResponse(status_code=status_code, content=body)


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "app_exception",
        error_code=exc.error_code,
        status_code=exc.status_code,
        details=exc.details,
    )
    return problem_response(
        request, exc.status_code, exc.error_code, exc.message, extra=exc.details
    )


def _field_errors(exc: RequestValidationError) -> list[FieldError]:
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query" location prefix.
        parts = [str(part) for part in error.get("loc", ())[1:]]
        errors.append(
            FieldError(
                field=".".join(parts) or "request",
                message=error.get("msg", "Invalid value"),
                type=error.get("type"),
            )
        )
    return errors


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _field_errors(exc)
    logger.warning("validation_error", fields=[error.field for error in errors])
    return problem_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        errors=errors,
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    # The client only ever sees the generic message.
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return problem_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
        title="Internal Server Error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the problem-details handlers on ``app``."""
    app.add_exception_handler(AppException, cast("ExceptionHandler", handle_app_exception))
    app.add_exception_handler(
        RequestValidationError, cast("ExceptionHandler", handle_validation_error)
    )
    app.add_exception_handler(Exception, handle_unexpected)
