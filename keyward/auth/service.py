"""Identity lifecycle: registration, password login and key rotation."""

import logging

from .errors import AuthFailure, ErrorKind
from .keys import generate_api_key, mask_api_key
from .models import IdentityRecord
from .passwords import PasswordHasher
from .store import CredentialStore, UsernameConflictError
from .validation import validate_registration

logger = logging.getLogger("keyward.auth.service")


class IdentityService:
    """Write-side identity operations over a credential store.

    Expected business outcomes are returned as ``AuthFailure`` values rather
    than raised. Unexpected store errors propagate to the caller.

    Usage:
        service = IdentityService(store, PasswordHasher())
        result = service.register("alice", "SecurePass123!")
        if isinstance(result, AuthFailure):
            ...
        else:
            print(f"Save this key: {result.api_key}")  # only time it is returned
    """

    def __init__(self, store: CredentialStore, hasher: PasswordHasher | None = None):
        self.store = store
        self.hasher = hasher or PasswordHasher()

    def register(self, username: str, password: str) -> IdentityRecord | AuthFailure:
        """Register a new user and issue their API key.

        The existence check followed by the insert is not atomic. Two
        concurrent registrations can both pass the check; the store's unique
        constraint rejects the second insert and that is reported as
        USERNAME_TAKEN like the ordinary case.

        Returns:
            The new record (including the plaintext API key), or a
            VALIDATION_FAILED / USERNAME_TAKEN failure.
        """
        username = (username or "").strip()
        logger.info(f"Attempting to register user: {username}")

        field_errors = validate_registration(username, password)
        if field_errors:
            logger.warning(f"Registration rejected for '{username}': invalid {', '.join(sorted(field_errors))}")
            return AuthFailure.validation(field_errors)

        if self.store.exists_by_username(username):
            logger.warning(f"Registration failed: Username already exists: {username}")
            return AuthFailure.username_taken(username)

        password_hash = self.hasher.hash(password)
        api_key = generate_api_key()

        try:
            record = self.store.insert(username, password_hash, api_key)
        except UsernameConflictError:
            logger.warning(f"Registration lost a concurrent race for username: {username}")
            return AuthFailure.username_taken(username)

        logger.info(f"Successfully registered user: {username} with ID: {record.id}")
        return record

    def authenticate(self, username: str, password: str) -> IdentityRecord | AuthFailure:
        """Verify a username/password pair.

        Unknown usernames and wrong passwords produce the same failure.
        """
        logger.debug(f"Attempting authentication for user: {username}")

        record = self.store.find_by_username(username)
        if record is None:
            self.hasher.burn(password)
            logger.warning(f"Authentication failed: User not found: {username}")
            return AuthFailure.of(ErrorKind.INVALID_CREDENTIALS)

        if not self.hasher.verify(password, record.password_hash):
            logger.warning(f"Authentication failed: Invalid password for user: {username}")
            return AuthFailure.of(ErrorKind.INVALID_CREDENTIALS)

        logger.debug(f"Authentication successful for user: {username}")
        return record

    def is_username_available(self, username: str) -> bool:
        """Advisory availability check; registration may still conflict."""
        return not self.store.exists_by_username(username.strip())

    def regenerate_key(self, user_id: int, current_key: str | None = None) -> str | AuthFailure:
        """Issue a new API key for a user, invalidating the old one.

        Args:
            user_id: Stored user to rotate.
            current_key: Key the caller authenticated with. When given, the
                stored record must hold it, so a principal whose id only
                coincides with a stored row cannot rotate that row.

        Returns:
            The new plaintext key, or USER_NOT_FOUND.
        """
        new_key = generate_api_key()
        if not self.store.update_api_key(user_id, new_key, current_api_key=current_key):
            logger.warning(f"Key rotation failed: user ID {user_id} not found")
            return AuthFailure.of(ErrorKind.USER_NOT_FOUND, detail=f"User with ID {user_id} not found")

        logger.info(f"Regenerated API key for user ID: {user_id} (new key {mask_api_key(new_key)})")
        return new_key

    def find_by_username(self, username: str) -> IdentityRecord | None:
        return self.store.find_by_username(username)

    def find_by_id(self, user_id: int) -> IdentityRecord | None:
        return self.store.find_by_id(user_id)

    def find_by_api_key(self, api_key: str) -> IdentityRecord | None:
        return self.store.find_by_api_key(api_key)

    def user_count(self) -> int:
        """Number of registered users."""
        return self.store.count()
