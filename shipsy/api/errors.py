from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shipsy.core.logging_config import get_logger
from shipsy.core_settings import get_settings
from shipsy.domain.errors import ShipsyError
from .envelope import error_response

logger = get_logger(__name__)

HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def _field_errors(exc: RequestValidationError) -> dict:
    details = {}
    for error in exc.errors():
        # drop the "body"/"query"/"path" prefix
        location = [str(part) for part in error.get("loc", ())[1:]]
        field = ".".join(location) or "request"
        message = str(error.get("msg", "Invalid value"))
        details.setdefault(field, message.removeprefix("Value error, "))
    return details


async def handle_shipsy_error(request: Request, exc: ShipsyError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    return error_response(
        422,
        "VALIDATION_ERROR",
        "Validation failed",
        _field_errors(exc),
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    code = HTTP_CODES.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "BAD_REQUEST")
    return error_response(exc.status_code, code, str(exc.detail))


async def handle_integrity_error(request: Request, exc: IntegrityError):
    logger.warning(f"Constraint violation: {type(exc.orig).__name__}")
    return error_response(status.HTTP_409_CONFLICT, "CONFLICT", "Resource conflicts with existing data")


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    details = None if get_settings().is_production else {"type": type(exc).__name__, "message": str(exc)}
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error", details)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShipsyError, handle_shipsy_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
