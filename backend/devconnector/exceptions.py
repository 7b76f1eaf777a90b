"""
Domain exceptions. Mapped to HTTP responses in api.middleware.error_handler.

    AppError (base)              -> 500 {"msg"}
    ├── FieldValidationError     -> 400 {"errors": [{"msg"}]}
    ├── NotFoundError            -> 400 {"msg"}
    └── StoreError               -> 500 {"msg": "Server Error"}
"""
from typing import Any


class AppError(Exception):
    """Base for errors that carry their own status code and client message."""

    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        return {"msg": self.message}


class FieldValidationError(AppError):
    """Input passed schema validation but was rejected by a business rule."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or [{"msg": self.message}]

    def to_content(self) -> dict[str, Any]:
        return {"errors": self.errors}


class NotFoundError(AppError):
    """No matching profile, user or experience entry (including malformed ids)."""

    status_code = 400
    default_message = "Not found"


class StoreError(AppError):
    """The persistence layer failed. Details are logged, never returned."""

    status_code = 500
    default_message = "Server Error"
