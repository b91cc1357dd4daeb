"""Cross-cutting pieces shared by the API and the tooling: structured logging and health checks."""

from .health import HealthStatus, ServiceHealth
from .logging_config import (
    RequestLoggingMiddleware,
    clear_request_context,
    get_logger,
    set_request_context,
    setup_logging,
)

__all__ = [
    "HealthStatus",
    "ServiceHealth",
    "RequestLoggingMiddleware",
    "clear_request_context",
    "get_logger",
    "set_request_context",
    "setup_logging",
]
