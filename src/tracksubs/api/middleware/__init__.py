"""FastAPI middleware components."""

from tracksubs.api.middleware.exception_handler import setup_exception_handlers
from tracksubs.api.middleware.logging import LoggingMiddleware
from tracksubs.api.middleware.metrics import MetricsMiddleware

__all__ = [
    "LoggingMiddleware",
    "MetricsMiddleware",
    "setup_exception_handlers",
]
