"""API error taxonomy.

Every failure that reaches a client is an ``ApiError``: an HTTP status, a
stable machine-readable ``code`` and a human message. The exception handler
in ``procoin.main`` renders it as ``{"message": ..., "code": ...}``.
"""

from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the ``code`` field."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    TOKEN_MISSING = "TOKEN_MISSING"
    EMAIL_MISSING = "EMAIL_MISSING"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_INVALIDATED = "TOKEN_INVALIDATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
    DISPATCH_FAILED = "DISPATCH_FAILED"
    AUTH_FAILED = "AUTH_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ApiError(HTTPException):
    """HTTP error with a stable error code."""

    def __init__(self, status_code: int, code: ErrorCode, message: str):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code.value}


def validation_error(message: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, message)


def not_found(message: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND, message)


def forbidden(message: str = "Forbidden") -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN, message)


# Domain exceptions raised by services and mapped to ApiError in the API layer.


class DuplicateEmailError(Exception):
    """Raised when registering an email that already exists."""


class DuplicateCourseCodeError(Exception):
    """Raised when a course code collides with an existing course."""


class CourseNotFoundError(Exception):
    """Raised when a child entity targets a course that does not exist."""


class UnknownProviderError(Exception):
    """Raised when no email template is registered for a provider key."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider
