"""Logging module with structured logging and request tracking."""

from erp_access.core.logging.config import configure_logging
from erp_access.core.logging.middleware import RequestLoggingMiddleware


__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
]
