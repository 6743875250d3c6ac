"""Application error taxonomy.

Services raise these; a single FastAPI exception handler (see ``main.py``)
turns them into the standard error envelope. Each error has a stable
``code`` for clients and a default message that can be overridden.
"""

from typing import Any

from fastapi import status


class AppError(Exception):
    """Base application error."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "app_error"
    default_message: str = "Request could not be processed"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""

    default_code = "validation_error"
    default_message = "Invalid input"


class NotFoundError(AppError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_message = "Not found"


class ForbiddenError(AppError):
    """Authenticated caller is not entitled to the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"
    default_message = "You don't have access to this content"


class AlreadyUsedError(AppError):
    default_code = "code_already_used"
    default_message = "This code has already been used"


class ExpiredError(AppError):
    default_code = "code_expired"
    default_message = "This code has expired"


class OutOfRangeError(AppError):
    default_code = "index_out_of_range"
    default_message = "Question index is out of range"


class DuplicateError(AppError):
    default_code = "duplicate"
    default_message = "Already exists"


class InternalError(AppError):
    """Unexpected failure; the message is safe to show, details are logged."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"
    default_message = "An unexpected error occurred. Please try again later."


class DatabaseError(InternalError):
    """Database operation failed."""

    default_code = "database_error"

    def __init__(self, message: str | None = None, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error
