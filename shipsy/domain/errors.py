from typing import Any, Dict, Optional


class ShipsyError(Exception):
    """Base for errors that map onto the error envelope.

    ``code`` is the machine-readable error code, ``status_code`` the HTTP
    status and ``details`` an optional mapping of extra information
    (field errors for validation failures).
    """

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(ShipsyError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Validation failed"


class BadRequestError(ShipsyError):
    code = "BAD_REQUEST"
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ShipsyError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class InvalidCredentials(UnauthorizedError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class IncorrectPassword(BadRequestError):
    code = "INVALID_CREDENTIALS"
    default_message = "Current password is incorrect"


class NotFoundError(ShipsyError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ShipsyError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Resource already exists"
