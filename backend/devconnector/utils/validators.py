"""
Input validation helpers. Used by request schemas and services.
"""
import re
from typing import Any, Callable

from pydantic_core import PydanticCustomError

# Email: reasonable format, no leading/trailing spaces
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

MIN_PASSWORD_LENGTH = 6


def validate_email(email: str) -> bool:
    """Return True if email format is valid."""
    if not email or len(email) > 255:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_password_length(password: str) -> bool:
    """Passwords need at least MIN_PASSWORD_LENGTH characters."""
    return len(password or "") >= MIN_PASSWORD_LENGTH


def parse_skills(raw: str) -> list[str]:
    """
    Split a comma-delimited skills string and trim each token.
    Order is preserved and empty tokens are kept: "a,,b" -> ["a", "", "b"].
    """
    return [skill.strip() for skill in raw.split(",")]


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def required(message: str) -> Callable[[Any], Any]:
    """
    Build a pydantic before-validator that rejects missing or blank values
    with a fixed, client-facing message. Pair with validate_default=True so
    it also fires when the field is omitted.
    """

    def check(value: Any) -> Any:
        if is_blank(value):
            raise PydanticCustomError("required", message)
        return value

    return check


def email_format(message: str) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if not isinstance(value, str) or not validate_email(value):
            raise PydanticCustomError("email", message)
        return value.strip().lower()

    return check


def min_password_length(message: str) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if not isinstance(value, str) or not validate_password_length(value):
            raise PydanticCustomError("password_length", message)
        return value

    return check
