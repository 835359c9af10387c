"""Tests for the SQLite credential store."""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from keyward.auth.keys import generate_api_key
from keyward.auth.store import CredentialStore, UsernameConflictError


class TestCredentialStore:
    """Tests for CredentialStore."""

    @pytest.fixture
    def temp_db(self):
        """Create a temporary database for testing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "test_users.db"
            yield db_path

    @pytest.fixture
    def store(self, temp_db):
        """Create a store with temporary database."""
        store = CredentialStore(db_path=temp_db)
        store.initialize()
        return store

    def test_initialize_creates_database(self, temp_db):
        """Test that initialize creates the database file."""
        store = CredentialStore(db_path=temp_db)
        store.initialize()
        assert temp_db.exists()

    def test_initialize_idempotent(self, store):
        """Test that initialize can be called repeatedly."""
        store.initialize()
        store._initialized = False
        store.initialize()
        assert store.count() == 0

    def test_insert_and_find(self, store):
        """Test inserting a record and reading it back three ways."""
        key = generate_api_key()
        record = store.insert("alice", "hash", key)

        assert record.id is not None
        assert store.find_by_username("alice").id == record.id
        assert store.find_by_api_key(key).username == "alice"
        assert store.find_by_id(record.id).api_key == key

    def test_find_missing(self, store):
        """Test lookups for unknown values return None."""
        assert store.find_by_username("nobody") is None
        assert store.find_by_api_key("ak_unknown") is None
        assert store.find_by_id(999) is None

    def test_username_lookup_case_sensitive(self, store):
        """Test that usernames are matched exactly."""
        store.insert("Alice", "hash", generate_api_key())
        assert store.find_by_username("alice") is None
        assert store.exists_by_username("Alice")

    def test_duplicate_username_raises_conflict(self, store):
        """Test the unique username constraint surfaces as a conflict."""
        store.insert("alice", "hash", generate_api_key())
        with pytest.raises(UsernameConflictError) as exc_info:
            store.insert("alice", "hash2", generate_api_key())
        assert exc_info.value.username == "alice"
        assert store.count() == 1

    def test_duplicate_api_key_raises_integrity_error(self, store):
        """Test an API key collision is not reported as a username conflict."""
        key = generate_api_key()
        store.insert("alice", "hash", key)
        with pytest.raises(sqlite3.IntegrityError):
            store.insert("bob", "hash", key)

    def test_update_api_key(self, store):
        """Test replacing a key makes the old one unresolvable."""
        old_key = generate_api_key()
        record = store.insert("alice", "hash", old_key)
        new_key = generate_api_key()

        assert store.update_api_key(record.id, new_key) is True
        assert store.find_by_api_key(old_key) is None
        assert store.find_by_api_key(new_key).id == record.id

    def test_update_api_key_unknown_user(self, store):
        """Test updating a missing user reports no change."""
        assert store.update_api_key(42, generate_api_key()) is False

    def test_update_api_key_requires_current_key(self, store):
        """Test a conditional update only applies while the row holds the given key."""
        old_key = generate_api_key()
        record = store.insert("alice", "hash", old_key)

        assert store.update_api_key(record.id, generate_api_key(), current_api_key="other-key") is False
        assert store.find_by_api_key(old_key).id == record.id

        new_key = generate_api_key()
        assert store.update_api_key(record.id, new_key, current_api_key=old_key) is True
        assert store.find_by_api_key(new_key).id == record.id

    def test_exists_and_count(self, store):
        """Test existence check and count."""
        assert not store.exists_by_username("alice")
        store.insert("alice", "hash", generate_api_key())
        store.insert("bob", "hash", generate_api_key())
        assert store.exists_by_username("alice")
        assert store.count() == 2

    def test_timestamps_round_trip(self, store):
        """Test stored timestamps come back timezone-aware."""
        record = store.insert("alice", "hash", generate_api_key())
        loaded = store.find_by_id(record.id)
        assert loaded.created_at == record.created_at
        assert loaded.created_at.tzinfo is not None
