"""Error taxonomy for authentication and identity operations.

Business outcomes (a taken username, a bad password) are returned as
``AuthFailure`` values. Guards that must stop a request (``require_role``)
raise ``AuthError`` wrapping the same value. Both are rendered to HTTP in one
place, ``keyward.api.errors``.
"""

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    """Stable, user-safe failure categories."""

    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIAL = "invalid_credential"  # API key presented but not resolvable
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    USERNAME_TAKEN = "username_taken"
    INVALID_CREDENTIALS = "invalid_credentials"  # username/password login
    VALIDATION_FAILED = "validation_failed"
    USER_NOT_FOUND = "user_not_found"
    INTERNAL_ERROR = "internal_error"


# Fixed outward messages. USERNAME_TAKEN is the only kind whose message
# carries request data (the username the caller just sent).
DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UNAUTHENTICATED: "Authentication required",
    ErrorKind.INVALID_CREDENTIAL: "Invalid API key",
    ErrorKind.INSUFFICIENT_PERMISSIONS: "Insufficient permissions",
    ErrorKind.USERNAME_TAKEN: "Username already exists",
    ErrorKind.INVALID_CREDENTIALS: "Invalid username or password",
    ErrorKind.VALIDATION_FAILED: "Request validation failed",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.INTERNAL_ERROR: "An unexpected error occurred",
}


@dataclass(frozen=True)
class AuthFailure:
    """A failed authentication or identity operation.

    Attributes:
        kind: The failure category.
        message: Caller-safe message.
        field_errors: Field name to message, only for VALIDATION_FAILED.
        detail: Server-side detail for logs. Never rendered to callers.
    """

    kind: ErrorKind
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)
    detail: str | None = None

    @classmethod
    def of(cls, kind: ErrorKind, detail: str | None = None) -> "AuthFailure":
        """Build a failure with the default message for its kind."""
        return cls(kind=kind, message=DEFAULT_MESSAGES[kind], detail=detail)

    @classmethod
    def username_taken(cls, username: str) -> "AuthFailure":
        return cls(
            kind=ErrorKind.USERNAME_TAKEN,
            message=f"Username '{username}' is already taken",
        )

    @classmethod
    def validation(cls, field_errors: dict[str, str]) -> "AuthFailure":
        return cls(
            kind=ErrorKind.VALIDATION_FAILED,
            message=DEFAULT_MESSAGES[ErrorKind.VALIDATION_FAILED],
            field_errors=dict(field_errors),
        )


class AuthError(Exception):
    """Raised by guards when a request must not proceed."""

    def __init__(self, failure: AuthFailure):
        super().__init__(failure.detail or failure.message)
        self.failure = failure

    @property
    def kind(self) -> ErrorKind:
        return self.failure.kind
