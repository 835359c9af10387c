"""Structural validation of usernames and passwords.

Each validator returns an error message, or None when the value is valid.
The request schemas and the identity service share these rules.
"""

import re

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 255

PASSWORD_SPECIAL_CHARS = "@$!%*?&"

_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
_PASSWORD_ALLOWED = re.compile(r"^[A-Za-z\d@$!%*?&]+$")

USERNAME_REQUIRED = "Username is required"
USERNAME_SIZE = f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
USERNAME_PATTERN = "Username can only contain letters, numbers, and underscores"
PASSWORD_REQUIRED = "Password is required"
PASSWORD_SIZE = f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
PASSWORD_NO_UPPERCASE = "Password must contain at least one uppercase letter"
PASSWORD_NO_LOWERCASE = "Password must contain at least one lowercase letter"
PASSWORD_NO_DIGIT = "Password must contain at least one digit"
PASSWORD_NO_SPECIAL = f"Password must contain at least one special character ({PASSWORD_SPECIAL_CHARS})"
PASSWORD_CHARSET = f"Password may only contain letters, digits, and {PASSWORD_SPECIAL_CHARS}"

REQUIRED_MESSAGES = {
    "username": USERNAME_REQUIRED,
    "password": PASSWORD_REQUIRED,
}


def validate_username(username: str | None) -> str | None:
    """Check username length and charset."""
    if username is None or not username.strip():
        return USERNAME_REQUIRED
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        return USERNAME_SIZE
    if not _USERNAME_PATTERN.match(username):
        return USERNAME_PATTERN
    return None


def validate_password(password: str | None) -> str | None:
    """Check password length, character classes and charset."""
    if password is None or not password.strip():
        return PASSWORD_REQUIRED
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        return PASSWORD_SIZE
    if not any(c.isascii() and c.isupper() for c in password):
        return PASSWORD_NO_UPPERCASE
    if not any(c.isascii() and c.islower() for c in password):
        return PASSWORD_NO_LOWERCASE
    if not any(c.isascii() and c.isdigit() for c in password):
        return PASSWORD_NO_DIGIT
    if not any(c in PASSWORD_SPECIAL_CHARS for c in password):
        return PASSWORD_NO_SPECIAL
    if not _PASSWORD_ALLOWED.match(password):
        return PASSWORD_CHARSET
    return None


def validate_registration(username: str | None, password: str | None) -> dict[str, str]:
    """Validate a registration payload.

    Returns:
        Field name to message; empty when the payload is valid.
    """
    errors: dict[str, str] = {}
    username_error = validate_username(username)
    if username_error:
        errors["username"] = username_error
    password_error = validate_password(password)
    if password_error:
        errors["password"] = password_error
    return errors
