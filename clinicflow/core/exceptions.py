"""Application exceptions.

Each subclass fixes the HTTP status it maps to; the error handler
derives the ``error`` field of the response body from the class name.
"""


class AppException(Exception):
    """Base application exception."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """The entity does not exist at all."""

    status_code = 404
    default_message = "Resource not found"


class UnauthorizedException(AppException):
    """Credentials are missing or wrong."""

    status_code = 401
    default_message = "Unauthorized"


class AccessDeniedException(AppException):
    """Caller's role or ownership forbids the operation."""

    status_code = 403
    default_message = "Access denied"


class InvalidStateException(AppException):
    """Operation is not legal in the entity's current lifecycle state."""

    status_code = 409
    default_message = "Invalid state"


class ConflictException(AppException):
    """Row was modified concurrently since it was read."""

    status_code = 409
    default_message = "Conflict"


class ValidationException(AppException):
    """Input violates a domain rule (bad reference, duplicate, range)."""

    status_code = 422
    default_message = "Validation error"


class UpstreamFailureException(AppException):
    """The backing datastore or an external provider failed."""

    status_code = 502
    default_message = "Upstream service failure"
