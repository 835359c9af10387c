"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..auth.validation import (
    PASSWORD_REQUIRED,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_REQUIRED,
    USERNAME_SIZE,
    validate_password,
    validate_username,
)


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(BaseModel):
    """Request to register a new user."""

    username: str = Field(..., description="3-50 characters: letters, digits, underscore")
    password: str = Field(
        ...,
        description="8-255 characters with upper, lower, digit and one of @$!%*?&",
    )

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str) -> str:
        error = validate_username(value)
        if error:
            raise ValueError(error)
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        error = validate_password(value)
        if error:
            raise ValueError(error)
        return value


class LoginRequest(BaseModel):
    """Request to log in with username and password."""

    username: str
    password: str

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str) -> str:
        if not value.strip():
            raise ValueError(USERNAME_REQUIRED)
        if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
            raise ValueError(USERNAME_SIZE)
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        if not value.strip():
            raise ValueError(PASSWORD_REQUIRED)
        return value


class AuthResponse(CamelModel):
    """Issued credentials after registration, login or key rotation."""

    api_key: str
    user_id: int
    username: str
    message: str | None = None
    timestamp: str


class UsernameAvailabilityResponse(CamelModel):
    """Result of a username availability check."""

    username: str
    available: bool
    message: str
    timestamp: str


class PrincipalSummary(CamelModel):
    """Key-free view of the authenticated principal."""

    user_id: int
    username: str
    roles: list[str]
    is_admin: bool


class CurrentUserResponse(PrincipalSummary):
    """Response for the current-user endpoint."""

    authenticated_at: str
    authenticated: bool = True
    timestamp: str


class AuthCheckResponse(CamelModel):
    """Authentication check that never rejects."""

    authenticated: bool
    user: PrincipalSummary | None = None
    timestamp: str


class AdminTestResponse(CamelModel):
    message: str
    user: PrincipalSummary
    timestamp: str


class StatusResponse(CamelModel):
    status: str
    service: str
    version: str
    timestamp: str


class ErrorBody(BaseModel):
    """Error response body."""

    status: int
    error: str
    message: str
    timestamp: str
    errors: dict[str, str] | None = None
