"""
Middleware: code that runs around every request before and after the
router.
"""

from .base import Middleware, NextHandler, chain
from .logging import LoggingMiddleware, RequestLog, format_log_time

__all__ = [
    "Middleware",
    "NextHandler",
    "chain",
    "LoggingMiddleware",
    "RequestLog",
    "format_log_time",
]
