"""Per-request log context.

Every request gets a request ID (taken from ``X-Request-ID`` when the
caller sends one) that is bound into the structlog context for the
lifetime of the request and echoed back on the response. Once the
session dependency has resolved a caller, its ``user_id`` joins the same
context, so every log line emitted while handling an admin action names
both.
"""

import time
from collections.abc import Iterable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp


logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = ("/health/", "/docs", "/redoc", "/openapi.json")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request ID and caller to the log context and log the outcome.

    Health and documentation paths still get a request ID but are not
    logged. Tokens, cookies and request bodies never reach the log.
    """

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = QUIET_PATHS) -> None:
        super().__init__(app)
        self.quiet_paths = tuple(quiet_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        quiet = request.url.path.startswith(self.quiet_paths)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise
        finally:
            structlog.contextvars.unbind_contextvars("method", "path")

        if not quiet:
            user_id = getattr(request.state, "user_id", None)
            _log_completion(response.status_code, _elapsed_ms(started), user_id)

        structlog.contextvars.unbind_contextvars("request_id")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _log_completion(status_code: int, duration_ms: float, user_id: object) -> None:
    if status_code >= 500:
        log = logger.error
    elif status_code >= 400:
        log = logger.warning
    else:
        log = logger.info

    log(
        "request_completed",
        status_code=status_code,
        duration_ms=duration_ms,
        user_id=str(user_id) if user_id else None,
    )
