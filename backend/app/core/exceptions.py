"""
Domain error taxonomy.

Services raise these; the handlers registered in ``app.main`` render them
as ``{"error": message}`` with the matching HTTP status.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict:
        body: dict = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation Error"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Forbidden(AppError):
    status_code = 403
    default_message = "Not authorized"


class Conflict(AppError):
    # Uniqueness violations are reported as 400, same as other client errors
    status_code = 400
    default_message = "Resource already exists"


class StorageError(AppError):
    status_code = 500
    default_message = "Internal server error"


class TooManyRequests(AppError):
    status_code = 429
    default_message = "Too many requests"

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_body(self) -> dict:
        body = super().to_body()
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body
