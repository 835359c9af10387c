"""API key authentication middleware and route dependencies.

Every request passes through ``ApiKeyAuthenticationMiddleware``:
1. Exempt paths (``/``, ``/health``, ``/actuator/...``) skip it entirely
2. No ``X-API-KEY`` header: the request continues anonymously
3. Otherwise the key registry resolves the key; a recognised key installs
   the authenticated token for the rest of the request

The middleware never rejects a request itself. Routes that need an identity
declare it with a dependency:

    @router.get("/me")
    def me(principal: Principal = Depends(require_authenticated)):
        ...

    @router.get("/admin/config")
    def config(principal: Principal = Depends(require_admin_role)):
        ...
"""

import logging

from fastapi import FastAPI, HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.context import authentication_scope, current_principal
from ..auth.errors import AuthError, AuthFailure, ErrorKind
from ..auth.keys import mask_api_key
from ..auth.models import Principal, Role, UnauthenticatedToken
from ..auth.providers import KeyRegistry
from ..auth.service import IdentityService

logger = logging.getLogger("keyward.api.auth")

API_KEY_HEADER = "X-API-KEY"

DEFAULT_PUBLIC_PATHS = ("/", "/health", "/actuator")

# Documents the header in the OpenAPI schema; the middleware does the work
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def is_exempt_path(path: str, public_paths) -> bool:
    """Check if a path equals a public path or lies beneath one."""
    for public in public_paths:
        if path == public:
            return True
        if public != "/" and path.startswith(public.rstrip("/") + "/"):
            return True
    return False


class ApiKeyAuthenticationMiddleware(BaseHTTPMiddleware):
    """Resolves the ``X-API-KEY`` header into the request's identity.

    The registry may be passed directly or left to ``app.state.key_registry``,
    which the application lifespan fills in.
    """

    def __init__(self, app, registry: KeyRegistry | None = None, public_paths=None):
        """Initialize the middleware.

        Args:
            app: ASGI application
            registry: Key registry (read from app state when omitted)
            public_paths: Paths that skip authentication
        """
        super().__init__(app)
        self.registry = registry
        self.public_paths = tuple(public_paths) if public_paths is not None else DEFAULT_PUBLIC_PATHS

    def _get_registry(self, request: Request) -> KeyRegistry | None:
        if self.registry is not None:
            return self.registry
        return getattr(request.app.state, "key_registry", None)

    async def dispatch(self, request: Request, call_next):
        """Authenticate the request, then hand it on.

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Response
        """
        if is_exempt_path(request.url.path, self.public_paths):
            return await call_next(request)

        api_key = (request.headers.get(API_KEY_HEADER) or "").strip()
        if not api_key:
            logger.debug(f"No API key provided for {request.method} {request.url.path}")
            return await call_next(request)

        registry = self._get_registry(request)
        if registry is None:
            logger.error("Key registry not initialized; treating request as unauthenticated")
            request.state.auth_failure = AuthFailure.of(ErrorKind.INVALID_CREDENTIAL, detail="no registry")
            return await call_next(request)

        result = await run_in_threadpool(registry.resolve, UnauthenticatedToken(api_key))
        if isinstance(result, AuthFailure):
            logger.debug(f"Rejected API key {mask_api_key(api_key)} for {request.url.path}")
            request.state.auth_failure = result
            return await call_next(request)

        request.state.authentication = result
        with authentication_scope(result):
            return await call_next(request)


def _request_principal(request: Request) -> Principal | None:
    principal = current_principal()
    if principal is not None:
        return principal
    token = getattr(request.state, "authentication", None)
    return token.principal if token is not None else None


async def get_principal(
    request: Request,
    _: str | None = Security(api_key_header),
) -> Principal | None:
    """Optional authentication: the principal, or None when anonymous."""
    return _request_principal(request)


async def require_authenticated(
    request: Request,
    _: str | None = Security(api_key_header),
) -> Principal:
    """Require an authenticated principal.

    Raises:
        AuthError: INVALID_CREDENTIAL when a key was presented and rejected,
            UNAUTHENTICATED when no key was presented.
    """
    principal = _request_principal(request)
    if principal is not None:
        return principal

    failure = getattr(request.state, "auth_failure", None)
    if failure is not None:
        raise AuthError(failure)
    raise AuthError(AuthFailure.of(ErrorKind.UNAUTHENTICATED, detail=f"No API key for {request.url.path}"))


async def require_admin_role(
    request: Request,
    _: str | None = Security(api_key_header),
) -> Principal:
    """Require an authenticated admin.

    Raises:
        AuthError: 401 kinds when unauthenticated, INSUFFICIENT_PERMISSIONS
            when authenticated without the admin role.
    """
    principal = await require_authenticated(request)
    if not principal.is_admin():
        raise AuthError(
            AuthFailure.of(
                ErrorKind.INSUFFICIENT_PERMISSIONS,
                detail=f"User {principal.username} does not have required role: {Role.ADMIN}",
            )
        )
    return principal


def init_dependencies(app: FastAPI, registry: KeyRegistry, service: IdentityService) -> None:
    """Attach the key registry and identity service to the application."""
    app.state.key_registry = registry
    app.state.identity_service = service


def get_key_registry(request: Request) -> KeyRegistry:
    """Get key registry dependency."""
    registry = getattr(request.app.state, "key_registry", None)
    if registry is None:
        raise HTTPException(status_code=500, detail="Key registry not initialized")
    return registry


def get_identity_service(request: Request) -> IdentityService:
    """Get identity service dependency."""
    service = getattr(request.app.state, "identity_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Identity service not initialized")
    return service
