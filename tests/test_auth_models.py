"""Tests for identity records, principals, tokens and failures."""

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from keyward.auth.errors import DEFAULT_MESSAGES, AuthError, AuthFailure, ErrorKind
from keyward.auth.models import (
    AuthenticatedToken,
    IdentityRecord,
    Principal,
    Role,
    UnauthenticatedToken,
    authorities_for,
    normalize_roles,
)


class TestPrincipal:
    """Tests for the Principal model."""

    def test_default_roles(self):
        """Test that a principal gets the USER role by default."""
        principal = Principal(id=1, username="alice", api_key="ak_x")
        assert principal.roles == frozenset({Role.USER})
        assert not principal.is_admin()

    def test_has_role_case_insensitive(self):
        """Test role checks ignore case."""
        principal = Principal(id=1, username="alice", api_key="ak_x", roles=frozenset({"ADMIN", "USER"}))
        assert principal.has_role("admin")
        assert principal.has_role("Admin")
        assert principal.has_role("USER")
        assert not principal.has_role("auditor")
        assert principal.is_admin()

    def test_repr_hides_api_key(self):
        """Test that the API key never appears in repr."""
        principal = Principal(id=1, username="alice", api_key="ak_supersecret")
        assert "ak_supersecret" not in repr(principal)
        assert "alice" in repr(principal)

    def test_to_dict(self):
        """Test dictionary view excludes the key."""
        principal = Principal(id=5, username="bob", api_key="ak_secret", roles=frozenset({"USER", "ADMIN"}))
        data = principal.to_dict()
        assert data["userId"] == 5
        assert data["username"] == "bob"
        assert data["roles"] == ["ADMIN", "USER"]
        assert data["isAdmin"] is True
        assert "ak_secret" not in str(data)
        datetime.fromisoformat(data["authenticatedAt"])

    def test_immutable(self):
        """Test principals cannot be modified."""
        principal = Principal(id=1, username="alice", api_key="ak_x")
        with pytest.raises(FrozenInstanceError):
            principal.username = "mallory"


class TestRoles:
    """Tests for role helpers."""

    def test_normalize_roles(self):
        """Test roles are uppercased, trimmed and de-duplicated."""
        assert normalize_roles([" admin", "USER", "user", "", "  "]) == frozenset({"ADMIN", "USER"})

    def test_authorities_for(self):
        """Test that roles map to ROLE_ authorities."""
        assert authorities_for(frozenset({"ADMIN", "USER"})) == frozenset({"ROLE_ADMIN", "ROLE_USER"})


class TestTokens:
    """Tests for the two-state authentication token."""

    def test_authenticated_creates_new_instance(self):
        """Test that authenticating returns a new token and leaves the original alone."""
        raw = UnauthenticatedToken("ak_key")
        principal = Principal(id=1, username="alice", api_key="ak_key", roles=frozenset({"ADMIN"}))

        token = raw.authenticated(principal)

        assert isinstance(token, AuthenticatedToken)
        assert token is not raw
        assert token.principal == principal
        assert token.credential == "ak_key"
        assert token.authorities == frozenset({"ROLE_ADMIN"})
        assert isinstance(raw, UnauthenticatedToken)

    def test_credential_hidden_from_repr(self):
        """Test that token reprs do not leak the credential."""
        raw = UnauthenticatedToken("ak_topsecret")
        token = raw.authenticated(Principal(id=1, username="alice", api_key="ak_topsecret"))
        assert "ak_topsecret" not in repr(raw)
        assert "ak_topsecret" not in repr(token)


class TestIdentityRecord:
    """Tests for the persisted identity record."""

    def test_to_dict_excludes_password_hash(self):
        """Test password hash stays out of dictionaries and repr."""
        record = IdentityRecord(id=1, username="alice", password_hash="$2b$hash", api_key="ak_k")
        assert "password_hash" not in record.to_dict()
        assert "$2b$hash" not in repr(record)
        assert record.to_dict()["username"] == "alice"


class TestAuthFailure:
    """Tests for the failure value and guard exception."""

    def test_default_messages(self):
        """Test each kind renders its fixed message."""
        assert AuthFailure.of(ErrorKind.UNAUTHENTICATED).message == "Authentication required"
        assert AuthFailure.of(ErrorKind.INVALID_CREDENTIAL).message == "Invalid API key"
        assert AuthFailure.of(ErrorKind.INVALID_CREDENTIALS).message == "Invalid username or password"
        assert all(kind in DEFAULT_MESSAGES for kind in ErrorKind)

    def test_username_taken_message(self):
        """Test conflict message names the username."""
        failure = AuthFailure.username_taken("alice")
        assert failure.kind == ErrorKind.USERNAME_TAKEN
        assert failure.message == "Username 'alice' is already taken"

    def test_validation_carries_field_errors(self):
        """Test validation failure keeps per-field messages."""
        failure = AuthFailure.validation({"username": "Username is required"})
        assert failure.kind == ErrorKind.VALIDATION_FAILED
        assert failure.message == "Request validation failed"
        assert failure.field_errors == {"username": "Username is required"}

    def test_detail_not_in_message(self):
        """Test server-side detail stays out of the outward message."""
        failure = AuthFailure.of(ErrorKind.INVALID_CREDENTIAL, detail="credential store error")
        assert "store" not in failure.message

    def test_auth_error_wraps_failure(self):
        """Test the guard exception exposes the failure and its kind."""
        error = AuthError(AuthFailure.of(ErrorKind.INSUFFICIENT_PERMISSIONS))
        assert error.kind == ErrorKind.INSUFFICIENT_PERMISSIONS
        assert error.failure.message == "Insufficient permissions"
