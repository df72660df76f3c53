"""Logging module with structured logging and request tracking."""

from rolegraph.core.logging.middleware import RequestContextMiddleware
from rolegraph.core.logging.setup import configure_logging


__all__ = [
    "RequestContextMiddleware",
    "configure_logging",
]
