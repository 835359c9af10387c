"""API module."""

from .auth import ApiKeyAuthenticationMiddleware, init_dependencies
from .errors import register_exception_handlers
from .routes import api_router, auth_router
from .security import SecurityHeadersMiddleware, SecurityLoggingMiddleware

__all__ = [
    "ApiKeyAuthenticationMiddleware",
    "SecurityHeadersMiddleware",
    "SecurityLoggingMiddleware",
    "api_router",
    "auth_router",
    "init_dependencies",
    "register_exception_handlers",
]
