"""Logging module with structured logging and request tracking."""

from bookstore.core.logging.middleware import RequestIdMiddleware, RequestLoggingMiddleware
from bookstore.core.logging.setup import configure_logging


__all__ = [
    "RequestIdMiddleware",
    "RequestLoggingMiddleware",
    "configure_logging",
]
