"""Authentication and identity module.

This module provides API key authentication backed by either static
configuration or the credential store, plus the identity lifecycle
(registration, login, key rotation).
"""

from .context import authentication_scope, current_principal, require_admin, require_principal
from .errors import AuthError, AuthFailure, ErrorKind
from .keys import generate_api_key, mask_api_key
from .models import AuthenticatedToken, IdentityRecord, Principal, Role, UnauthenticatedToken
from .providers import DatabaseKeyRegistry, KeyRegistry, StaticKeyRegistry, build_key_registry
from .service import IdentityService
from .store import CredentialStore

__all__ = [
    "AuthError",
    "AuthFailure",
    "AuthenticatedToken",
    "CredentialStore",
    "DatabaseKeyRegistry",
    "ErrorKind",
    "IdentityRecord",
    "IdentityService",
    "KeyRegistry",
    "Principal",
    "Role",
    "StaticKeyRegistry",
    "UnauthenticatedToken",
    "authentication_scope",
    "build_key_registry",
    "current_principal",
    "generate_api_key",
    "mask_api_key",
    "require_admin",
    "require_principal",
]
