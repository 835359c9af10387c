"""Authentication models: identity records, principals and tokens."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Role:
    """Well-known role names. Roles are plain uppercase strings."""

    ADMIN = "ADMIN"
    USER = "USER"


# Roles granted to every user resolved from the credential store
DEFAULT_USER_ROLES: frozenset[str] = frozenset({Role.USER})


def normalize_roles(roles) -> frozenset[str]:
    """Uppercase and de-duplicate role names, dropping blanks."""
    return frozenset(r.strip().upper() for r in roles if r and r.strip())


@dataclass
class IdentityRecord:
    """Persisted user identity."""

    id: int
    username: str
    password_hash: str = field(repr=False)
    api_key: str = field(repr=False)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary (excludes password_hash for safety)."""
        return {
            "id": self.id,
            "username": self.username,
            "api_key": self.api_key,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Principal:
    """Identity of an authenticated request.

    Created fresh for every authenticated request and never persisted.
    The API key is kept for the request's own use but stays out of
    repr() and to_dict().
    """

    id: int
    username: str
    api_key: str = field(repr=False, compare=False)
    roles: frozenset[str] = DEFAULT_USER_ROLES
    authenticated_at: datetime = field(default_factory=_utcnow, compare=False)

    def has_role(self, role: str) -> bool:
        """Case-insensitive role membership test."""
        return role.upper() in self.roles

    def is_admin(self) -> bool:
        """Check if this principal holds the admin role."""
        return self.has_role(Role.ADMIN)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "userId": self.id,
            "username": self.username,
            "roles": sorted(self.roles),
            "isAdmin": self.is_admin(),
            "authenticatedAt": self.authenticated_at.isoformat(),
        }


def authorities_for(roles: frozenset[str]) -> frozenset[str]:
    """Map role names to granted authorities (``ROLE_<NAME>``)."""
    return frozenset(f"ROLE_{role}" for role in roles)


@dataclass(frozen=True)
class UnauthenticatedToken:
    """A raw credential that has not been resolved yet."""

    credential: str = field(repr=False)

    def authenticated(self, principal: Principal) -> "AuthenticatedToken":
        """Return the authenticated counterpart of this token."""
        return AuthenticatedToken(
            credential=self.credential,
            principal=principal,
            authorities=authorities_for(principal.roles),
        )


@dataclass(frozen=True)
class AuthenticatedToken:
    """A credential resolved to a principal and its authorities."""

    credential: str = field(repr=False)
    principal: Principal
    authorities: frozenset[str] = frozenset()
