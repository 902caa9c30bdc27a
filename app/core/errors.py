"""
Typed error kinds raised by the services.

The API layer maps them to responses by class, never by message text.
Every error carries a stable ``kind`` string, the HTTP status it maps to,
a human readable message and optional structured ``details``.
"""
from typing import Any


class AppError(Exception):
    kind = "AppError"
    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, **self.details}


class InvalidInput(AppError):
    kind = "InvalidInput"
    status_code = 400


class Unauthorized(AppError):
    kind = "Unauthorized"
    status_code = 401


class Forbidden(AppError):
    kind = "Forbidden"
    status_code = 403


class NotFound(AppError):
    kind = "NotFound"
    status_code = 404


class Conflict(AppError):
    kind = "Conflict"
    status_code = 409


class SplitMismatch(AppError):
    kind = "SplitMismatch"
    status_code = 400

    def __init__(self, message: str, expected, actual):
        super().__init__(message, expected=str(expected), actual=str(actual))
        self.expected = expected
        self.actual = actual


class PersistenceFailure(AppError):
    """Store could not commit. Safe for the caller to retry."""
    kind = "PersistenceFailure"
    status_code = 503
