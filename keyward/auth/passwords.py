"""Password hashing with bcrypt."""

import base64
import hashlib
import logging
import threading

import bcrypt

logger = logging.getLogger("keyward.auth.passwords")

DEFAULT_ROUNDS = 12


# bcrypt only accepts 72 bytes of input. Passwords may be longer, so the
# SHA-256 digest is hashed instead (44 base64 bytes).
def _encode(password: str) -> bytes:
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


class PasswordHasher:
    """Adaptive password hashing.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("SecurePass123!")
        hasher.verify("SecurePass123!", stored)  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self.rounds = rounds
        self._dummy_hash: str | None = None
        self._lock = threading.Lock()

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash (constant-time comparison)."""
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False

    def burn(self, password: str) -> None:
        """Spend one verification on a throwaway hash.

        Used when the user does not exist so that a failed login costs the
        same whether or not the username is registered.
        """
        with self._lock:
            if self._dummy_hash is None:
                self._dummy_hash = self.hash("keyward-dummy-password")
        self.verify(password, self._dummy_hash)
