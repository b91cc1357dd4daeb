"""
Structured logging for the Shipsy API

Every record is written as a single JSON object. The request id and the
authenticated user id live in context variables: the request middleware
sets the first, the auth guard the second, and the formatter attaches both
to whatever is logged while the request is being served.
"""

import json
import logging
import logging.handlers
import re
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
REDACTED = "***REDACTED***"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

# Filled in by setup_logging; stamped on every record
_service_info: Dict[str, str] = {
    "service": "shipsy-api",
    "environment": "development",
    "version": "1.0.0",
}


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: service info, request trace, source and custom fields"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "@timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_service_info)

        trace = {
            name: value
            for name, value in (("request_id", request_id_var.get()), ("user_id", user_id_var.get()))
            if value
        }
        if trace:
            entry["trace"] = trace

        entry["source"] = f"{record.module}.{record.funcName}:{record.lineno}"

        custom = getattr(record, "extra_fields", None)
        if custom:
            entry["custom"] = custom

        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = {
                "type": record.exc_info[0].__name__,
                "detail": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class SecurityFilter(logging.Filter):
    """Redacts passwords, tokens and cookies from messages and custom fields"""

    SENSITIVE_FIELDS = (
        "password", "password_hash", "token", "access_token", "refresh_token",
        "secret", "authorization", "cookie",
    )
    _pattern = re.compile(
        r"(?i)\b(%s)\b(\s*[=:]\s*)(\"[^\"]*\"|'[^']*'|[^\s,;]+)" % "|".join(SENSITIVE_FIELDS)
    )
    _bearer = re.compile(r"(?i)bearer\s+[A-Za-z0-9\-_\.]+")

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self._bearer.sub(f"Bearer {REDACTED}", message)
        redacted = self._pattern.sub(rf"\1\2{REDACTED}", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            record.extra_fields = {
                key: REDACTED if key.lower() in self.SENSITIVE_FIELDS else value
                for key, value in fields.items()
            }
        return True


def _build_handlers(enable_console: bool, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        # 10MB per file, five generations
        handlers.append(logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5))
    return handlers


def setup_logging(
    service_name: str,
    level: str = "INFO",
    environment: str = "development",
    version: str = "1.0.0",
    enable_console: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Route all logging through the JSON formatter and the redaction filter

    Args:
        service_name: Reported as ``service`` on every record
        level: Root log level name
        environment: Reported as ``environment`` on every record
        version: Reported as ``version`` on every record
        enable_console: Write to stdout
        log_file: Also write to this rotating file
    """
    _service_info.update(service=service_name, environment=environment, version=version)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = StructuredFormatter()
    redactor = SecurityFilter()
    for handler in _build_handlers(enable_console, log_file):
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root.addHandler(handler)

    # Access logs come from the middleware; SQL echo is controlled by DB_ECHO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    root.debug(
        "Logging configured",
        extra={"extra_fields": {"level": level, "console": enable_console, "file": log_file}},
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_context(request_id: Optional[str] = None, user_id: Optional[str] = None) -> None:
    if request_id:
        request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)


def clear_request_context() -> None:
    request_id_var.set(None)
    user_id_var.set(None)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with status and duration

    Reuses an incoming X-Request-ID or mints one, and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        clear_request_context()
        set_request_context(request_id=request_id)

        logger = get_logger(__name__)
        fields = {"method": request.method, "path": request.url.path}
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(f"{request.method} {request.url.path} failed", extra={"extra_fields": fields})
            raise

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        log = logger.warning if response.status_code >= 500 else logger.info
        log(f"{request.method} {request.url.path} -> {response.status_code}", extra={"extra_fields": fields})

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
