"""SQLite-backed credential store for user identity records."""

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from .keys import mask_api_key
from .models import IdentityRecord

logger = logging.getLogger("keyward.auth.store")

# Default database location
DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "keyward" / "keyward.db"

# Seconds a connection waits on a locked database before giving up
DEFAULT_TIMEOUT = 30.0


class UsernameConflictError(ValueError):
    """Raised when an insert violates the unique username constraint."""

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' already exists")
        self.username = username


class CredentialStore:
    """SQLite-backed identity record management.

    ``username`` and ``api_key`` are both UNIQUE at the schema level. The
    constraint, not any application check, is what makes concurrent
    registrations of the same username safe.

    A connection is opened per operation, so one store instance can be used
    from any number of threads.

    Usage:
        store = CredentialStore(Path("keyward.db"))
        store.initialize()

        record = store.insert("alice", password_hash, api_key)
        store.find_by_api_key(api_key)
    """

    def __init__(self, db_path: Path | None = None, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.local/share/keyward/keyward.db
            timeout: Busy timeout in seconds for each connection.
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.timeout = timeout
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the users table if it doesn't exist.

        Safe to call multiple times.
        """
        if self._initialized:
            return

        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    api_key TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
            self._initialized = True
            logger.info(f"Credential store initialized at {self.db_path}")
        finally:
            conn.close()

    def _find_one(self, column: str, value) -> IdentityRecord | None:
        self.initialize()

        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT * FROM users WHERE {column} = ?",
                (value,),
            ).fetchone()
            if row is None:
                return None
            return self._row_to_record(row)
        finally:
            conn.close()

    def find_by_username(self, username: str) -> IdentityRecord | None:
        """Get a record by exact (case-sensitive) username."""
        return self._find_one("username", username)

    def find_by_api_key(self, api_key: str) -> IdentityRecord | None:
        """Get a record by exact API key."""
        return self._find_one("api_key", api_key)

    def find_by_id(self, user_id: int) -> IdentityRecord | None:
        """Get a record by its numeric id."""
        return self._find_one("id", user_id)

    def insert(self, username: str, password_hash: str, api_key: str) -> IdentityRecord:
        """Insert a new identity record.

        Returns:
            The stored record with its assigned id.

        Raises:
            UsernameConflictError: If the username is already taken.
            sqlite3.Error: On other database errors, including an API key
                collision.
        """
        self.initialize()

        now = datetime.now(UTC)

        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO users (username, password_hash, api_key, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
            """,
                (username, password_hash, api_key, now.isoformat(), now.isoformat()),
            )
            conn.commit()

            record = IdentityRecord(
                id=cursor.lastrowid,
                username=username,
                password_hash=password_hash,
                api_key=api_key,
                created_at=now,
                updated_at=now,
            )
            logger.info(f"Stored user '{username}' with id {record.id}")
            return record

        except sqlite3.IntegrityError as e:
            if "users.username" in str(e):
                raise UsernameConflictError(username) from e
            logger.error(f"Integrity error storing user '{username}' (key {mask_api_key(api_key)})")
            raise
        finally:
            conn.close()

    def update_api_key(self, user_id: int, new_api_key: str, current_api_key: str | None = None) -> bool:
        """Replace a user's API key.

        Args:
            user_id: Row to update.
            new_api_key: Replacement key.
            current_api_key: When given, the row is only updated if it still
                holds this key.

        Returns:
            True if a row was updated, False if no matching user exists.
        """
        self.initialize()

        conn = self._get_connection()
        try:
            now = datetime.now(UTC)
            if current_api_key is None:
                result = conn.execute(
                    "UPDATE users SET api_key = ?, updated_at = ? WHERE id = ?",
                    (new_api_key, now.isoformat(), user_id),
                )
            else:
                result = conn.execute(
                    "UPDATE users SET api_key = ?, updated_at = ? WHERE id = ? AND api_key = ?",
                    (new_api_key, now.isoformat(), user_id, current_api_key),
                )
            conn.commit()
            return result.rowcount > 0
        finally:
            conn.close()

    def exists_by_username(self, username: str) -> bool:
        """Check whether a username is registered."""
        self.initialize()

        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM users WHERE username = ? LIMIT 1",
                (username,),
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def count(self) -> int:
        """Get the number of stored users."""
        self.initialize()

        conn = self._get_connection()
        try:
            row = conn.execute("SELECT COUNT(*) as count FROM users").fetchone()
            return row["count"]
        finally:
            conn.close()

    def _row_to_record(self, row: sqlite3.Row) -> IdentityRecord:
        """Convert a database row to an IdentityRecord."""
        return IdentityRecord(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            api_key=row["api_key"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
