"""Request-scoped identity context.

The authentication middleware installs the resolved token with
``authentication_scope()``; handlers read it through the accessor functions
below. The cell is a ContextVar, so each request task (and any worker thread
it runs sync code in) sees only its own value, and the scope always restores
the previous value on exit.

Usage:
    with authentication_scope(token):
        principal = require_principal()
        require_admin()
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from .errors import AuthError, AuthFailure, ErrorKind
from .models import AuthenticatedToken, Principal, Role

_current_authentication: ContextVar[AuthenticatedToken | None] = ContextVar(
    "keyward_authentication", default=None
)


@contextmanager
def authentication_scope(token: AuthenticatedToken | None) -> Iterator[AuthenticatedToken | None]:
    """Install ``token`` as the current authentication for the block."""
    reset_token = _current_authentication.set(token)
    try:
        yield token
    finally:
        _current_authentication.reset(reset_token)


def current_authentication() -> AuthenticatedToken | None:
    """Get the installed token, if any."""
    return _current_authentication.get()


def current_principal() -> Principal | None:
    """Get the authenticated principal, or None for anonymous requests."""
    token = _current_authentication.get()
    return token.principal if token is not None else None


def current_user_id() -> int | None:
    principal = current_principal()
    return principal.id if principal else None


def current_username() -> str | None:
    principal = current_principal()
    return principal.username if principal else None


def current_roles() -> frozenset[str]:
    principal = current_principal()
    return principal.roles if principal else frozenset()


def is_authenticated() -> bool:
    return current_principal() is not None


def require_principal() -> Principal:
    """Get the principal or fail.

    Raises:
        AuthError: UNAUTHENTICATED when no principal is installed.
    """
    principal = current_principal()
    if principal is None:
        raise AuthError(AuthFailure.of(ErrorKind.UNAUTHENTICATED, detail="No authenticated user found"))
    return principal


def has_role(role: str) -> bool:
    """Case-insensitive role check; False when anonymous."""
    principal = current_principal()
    return principal.has_role(role) if principal else False


def is_admin() -> bool:
    return has_role(Role.ADMIN)


def require_role(role: str) -> None:
    """Fail unless the current principal holds ``role``.

    Raises:
        AuthError: INSUFFICIENT_PERMISSIONS when the role is missing,
            including for anonymous requests.
    """
    if not has_role(role):
        username = current_username() or "unknown"
        raise AuthError(
            AuthFailure.of(
                ErrorKind.INSUFFICIENT_PERMISSIONS,
                detail=f"User {username} does not have required role: {role.upper()}",
            )
        )


def require_admin() -> None:
    """Fail unless the current principal is an admin."""
    require_role(Role.ADMIN)
