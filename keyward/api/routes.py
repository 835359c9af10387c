"""FastAPI routes for registration, login and identity diagnostics."""

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from .. import __version__
from ..auth.context import current_principal, is_authenticated, require_admin, require_principal
from ..auth.errors import AuthFailure
from ..auth.models import Principal
from ..auth.providers import KeyRegistry
from ..auth.service import IdentityService
from .auth import (
    get_identity_service,
    get_key_registry,
    require_admin_role,
    require_authenticated,
)
from .errors import failure_response, format_timestamp
from .schemas import (
    AdminTestResponse,
    AuthCheckResponse,
    AuthResponse,
    CurrentUserResponse,
    ErrorBody,
    LoginRequest,
    PrincipalSummary,
    RegisterRequest,
    StatusResponse,
    UsernameAvailabilityResponse,
)

logger = logging.getLogger("keyward.api.routes")

auth_router = APIRouter(prefix="/auth", tags=["auth"])
api_router = APIRouter(prefix="/api", tags=["api"])

_ERRORS = {
    400: {"model": ErrorBody},
    401: {"model": ErrorBody},
    403: {"model": ErrorBody},
    404: {"model": ErrorBody},
    409: {"model": ErrorBody},
}


def _summary(principal: Principal) -> PrincipalSummary:
    return PrincipalSummary(
        user_id=principal.id,
        username=principal.username,
        roles=sorted(principal.roles),
        is_admin=principal.is_admin(),
    )


@auth_router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
def register(
    request: RegisterRequest,
    service: IdentityService = Depends(get_identity_service),
) -> AuthResponse | JSONResponse:
    """
    Register a new user.

    The API key in the response is the caller's only copy; it is never
    returned by any other endpoint except login and key rotation.
    """
    logger.info(f"Registration attempt for username: {request.username}")

    result = service.register(request.username, request.password)
    if isinstance(result, AuthFailure):
        return failure_response(result)

    logger.info(f"User registration successful: {result.username} (ID: {result.id})")
    return AuthResponse(
        api_key=result.api_key,
        user_id=result.id,
        username=result.username,
        message="User registered successfully",
        timestamp=format_timestamp(),
    )


@auth_router.post("/login", response_model=AuthResponse, responses=_ERRORS)
def login(
    request: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
) -> AuthResponse | JSONResponse:
    """Log in with username and password and receive the user's API key."""
    logger.debug(f"Login attempt for username: {request.username}")

    result = service.authenticate(request.username, request.password)
    if isinstance(result, AuthFailure):
        return failure_response(result)

    logger.debug(f"User login successful: {result.username}")
    return AuthResponse(
        api_key=result.api_key,
        user_id=result.id,
        username=result.username,
        message="Login successful",
        timestamp=format_timestamp(),
    )


@auth_router.get("/check-username", response_model=UsernameAvailabilityResponse, responses=_ERRORS)
def check_username(
    username: str = Query(..., description="Username to check"),
    service: IdentityService = Depends(get_identity_service),
) -> UsernameAvailabilityResponse:
    """Check whether a username is free. Advisory only: registration may still conflict."""
    available = service.is_username_available(username)
    return UsernameAvailabilityResponse(
        username=username,
        available=available,
        message="Username is available" if available else "Username is already taken",
        timestamp=format_timestamp(),
    )


@auth_router.post("/regenerate-key", response_model=AuthResponse, responses=_ERRORS)
def regenerate_key(
    principal: Principal = Depends(require_authenticated),
    service: IdentityService = Depends(get_identity_service),
) -> AuthResponse | JSONResponse:
    """Rotate the caller's API key. The old key stops working immediately."""
    result = service.regenerate_key(principal.id, current_key=principal.api_key)
    if isinstance(result, AuthFailure):
        return failure_response(result)

    return AuthResponse(
        api_key=result,
        user_id=principal.id,
        username=principal.username,
        message="API key regenerated successfully",
        timestamp=format_timestamp(),
    )


@api_router.get("/health", response_model=StatusResponse)
def api_health() -> StatusResponse:
    """API health check; anonymous callers allowed."""
    return StatusResponse(
        status="UP",
        service="keyward API",
        version=__version__,
        timestamp=format_timestamp(),
    )


@api_router.get("/auth/me", response_model=CurrentUserResponse, responses=_ERRORS)
def current_user(principal: Principal = Depends(require_authenticated)) -> CurrentUserResponse:
    """Return the authenticated principal (never its key)."""
    return CurrentUserResponse(
        user_id=principal.id,
        username=principal.username,
        roles=sorted(principal.roles),
        is_admin=principal.is_admin(),
        authenticated_at=principal.authenticated_at.isoformat(),
        timestamp=format_timestamp(),
    )


@api_router.get("/auth/test", response_model=AuthCheckResponse)
def auth_check() -> AuthCheckResponse:
    """Report whether the request is authenticated. Never rejects."""
    principal = current_principal()
    return AuthCheckResponse(
        authenticated=is_authenticated(),
        user=_summary(principal) if principal else None,
        timestamp=format_timestamp(),
    )


@api_router.get("/auth/admin-test", response_model=AdminTestResponse, responses=_ERRORS)
def admin_test(_: Principal = Depends(require_authenticated)) -> AdminTestResponse:
    """Admin-only check, guarded through the identity context."""
    require_admin()
    principal = require_principal()
    return AdminTestResponse(
        message="Admin access granted",
        user=_summary(principal),
        timestamp=format_timestamp(),
    )


@api_router.get("/auth/admin/config", responses=_ERRORS)
def auth_config(
    _: Principal = Depends(require_admin_role),
    registry: KeyRegistry = Depends(get_key_registry),
) -> dict:
    """Describe the active key registry. Raw keys are never included."""
    return {
        **registry.describe(),
        "timestamp": format_timestamp(),
        "note": "API keys themselves are not exposed for security",
    }
