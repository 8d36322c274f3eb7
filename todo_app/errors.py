"""Application error taxonomy.

Services raise these; the exception handlers in ``main`` turn them into
HTTP responses.
"""

from typing import Dict, List, Optional


class AppError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class RequestValidationFailed(AppError):
    """Malformed or out-of-range input, reported per field."""

    status_code = 422
    public_message = "Validation error"

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        fields = ", ".join(error["field"] for error in errors)
        super().__init__(f"Invalid value for: {fields}")

    @classmethod
    def for_field(cls, field: str, message: str) -> "RequestValidationFailed":
        return cls([{"field": field, "message": message}])


class AuthenticationError(AppError):
    """Missing or invalid credential."""

    status_code = 401
    public_message = "Unauthorized"


class NotFoundError(AppError):
    """Record absent or not owned by the caller."""

    status_code = 404
    public_message = "Not found"


class ConflictError(AppError):
    """Duplicate value for a unique field."""

    status_code = 409
    public_message = "Conflict"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.errors = [{"field": field, "message": message}]


class UpstreamError(AppError):
    """Persistence or downstream failure."""

    status_code = 502
    public_message = "Upstream service error"
