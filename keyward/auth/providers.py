"""Key registries: resolve a presented API key to an authenticated token.

Two interchangeable strategies exist. ``StaticKeyRegistry`` serves keys
declared in configuration; ``DatabaseKeyRegistry`` looks keys up in the
credential store on every call. Exactly one is active per deployment and
the authentication middleware only sees the ``KeyRegistry`` interface.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from .errors import AuthFailure, ErrorKind
from .keys import StaticKeyEntry, mask_api_key, parse_api_keys
from .models import DEFAULT_USER_ROLES, AuthenticatedToken, Principal, UnauthenticatedToken
from .store import CredentialStore

logger = logging.getLogger("keyward.auth.providers")

PROVIDER_STATIC = "static"
PROVIDER_DATABASE = "database"


class KeyRegistry(ABC):
    """Resolves API keys to authenticated tokens."""

    name: str = "abstract"

    @abstractmethod
    def resolve(self, token: UnauthenticatedToken) -> AuthenticatedToken | AuthFailure:
        """Resolve a raw credential.

        Returns:
            An AuthenticatedToken, or an INVALID_CREDENTIAL failure when the
            key does not map to any identity.
        """

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        """Key-free summary for administrative diagnostics."""


def _invalid(detail: str) -> AuthFailure:
    return AuthFailure.of(ErrorKind.INVALID_CREDENTIAL, detail=detail)


class StaticKeyRegistry(KeyRegistry):
    """Registry over keys loaded once from configuration.

    The mapping is read-only after construction, so concurrent resolves need
    no locking.
    """

    name = PROVIDER_STATIC

    def __init__(self, entries: Mapping[str, StaticKeyEntry]):
        self._entries: Mapping[str, StaticKeyEntry] = MappingProxyType(dict(entries))
        logger.info(f"Initialized API key authentication with {len(self._entries)} valid keys")
        logger.debug(f"Loaded users: {self.loaded_users()}")

    @classmethod
    def from_config(cls, admin_keys: str | None, user_keys: str | None) -> "StaticKeyRegistry":
        """Build a registry from the ``key:userId:username:roles|...`` strings."""
        return cls(parse_api_keys(admin_keys, user_keys))

    def resolve(self, token: UnauthenticatedToken) -> AuthenticatedToken | AuthFailure:
        entry = self._entries.get(token.credential)
        if entry is None:
            logger.warning(f"Authentication failed for API key: {mask_api_key(token.credential)}")
            return _invalid("unknown static key")

        principal = Principal(
            id=entry.user_id,
            username=entry.username,
            api_key=entry.api_key,
            roles=entry.roles,
        )
        logger.debug(f"Authenticated user: {principal.username} with roles: {sorted(principal.roles)}")
        return token.authenticated(principal)

    def loaded_key_count(self) -> int:
        """Number of configured keys."""
        return len(self._entries)

    def loaded_users(self) -> list[str]:
        """``username(ROLES)`` summaries, without the keys themselves."""
        return [entry.summary() for entry in self._entries.values()]

    def describe(self) -> dict[str, Any]:
        return {
            "provider": self.name,
            "loadedApiKeys": self.loaded_key_count(),
            "users": self.loaded_users(),
        }


class DatabaseKeyRegistry(KeyRegistry):
    """Registry that looks keys up in the credential store per request.

    A missing key and a store error produce the same failure, so callers
    cannot tell which keys exist.
    """

    name = PROVIDER_DATABASE

    def __init__(self, store: CredentialStore, default_roles: frozenset[str] = DEFAULT_USER_ROLES):
        self.store = store
        self.default_roles = default_roles

    def resolve(self, token: UnauthenticatedToken) -> AuthenticatedToken | AuthFailure:
        masked = mask_api_key(token.credential)
        try:
            record = self.store.find_by_api_key(token.credential)
        except Exception as e:
            logger.error(f"Authentication error for API key {masked}: {e}")
            return _invalid("credential store error")

        if record is None:
            logger.warning(f"Authentication failed: no user found for API key {masked}")
            return _invalid("unknown database key")

        principal = Principal(
            id=record.id,
            username=record.username,
            api_key=record.api_key,
            roles=self.default_roles,
        )
        logger.debug(f"Authentication successful for user: {record.username}")
        return token.authenticated(principal)

    def describe(self) -> dict[str, Any]:
        return {
            "provider": self.name,
            "registeredUsers": self.store.count(),
        }


def build_key_registry(settings, store: CredentialStore | None = None) -> KeyRegistry:
    """Create the registry selected by ``settings.auth_provider``.

    Args:
        settings: Application settings.
        store: Credential store; required for the database provider.

    Raises:
        ValueError: If the provider name is unknown or the store is missing.
    """
    provider = settings.auth_provider.lower()
    if provider == PROVIDER_STATIC:
        return StaticKeyRegistry.from_config(settings.admin_api_keys, settings.user_api_keys)
    if provider == PROVIDER_DATABASE:
        if store is None:
            raise ValueError("Database key registry requires a credential store")
        return DatabaseKeyRegistry(store)
    raise ValueError(
        f"Unknown auth provider: {settings.auth_provider} "
        f"(expected '{PROVIDER_STATIC}' or '{PROVIDER_DATABASE}')"
    )
