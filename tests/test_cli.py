"""Tests for the command-line interface."""

import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from keyward.auth.keys import parse_api_keys
from keyward.auth.passwords import PasswordHasher
from keyward.auth.service import IdentityService
from keyward.auth.store import CredentialStore
from keyward.cli import create_parser, main
from keyward.cli.keys import cmd_list
from keyward.cli.users import cmd_check, cmd_count, cmd_register, cmd_rotate_key

PASSWORD = "SecurePass123!"


@pytest.fixture
def service():
    """Identity service over a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = CredentialStore(db_path=Path(tmpdir) / "test_users.db")
        store.initialize()
        yield IdentityService(store, PasswordHasher(rounds=4))


class TestParser:
    """Tests for argument parsing."""

    def test_users_register(self):
        args = create_parser().parse_args(["users", "register", "alice", "--password", PASSWORD, "--json"])
        assert args.command == "users"
        assert args.users_command == "register"
        assert args.username == "alice"
        assert args.json_output is True

    def test_rotate_key_requires_int(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["users", "rotate-key", "not-a-number"])

    def test_keys_list(self):
        args = create_parser().parse_args(["keys", "list"])
        assert args.keys_command == "list"
        assert args.json_output is False


class TestUserCommands:
    """Tests for user management commands."""

    def test_register_json(self, service, capsys):
        """Test registration prints the new key as JSON."""
        assert cmd_register("alice", PASSWORD, json_output=True, service=service) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["username"] == "alice"
        assert output["apiKey"].startswith("ak_")

    def test_register_duplicate(self, service, capsys):
        cmd_register("alice", PASSWORD, service=service)
        capsys.readouterr()

        assert cmd_register("alice", PASSWORD, service=service) == 1
        assert "Username 'alice' is already taken" in capsys.readouterr().out

    def test_register_invalid(self, service, capsys):
        """Test validation errors are listed per field."""
        assert cmd_register("alice", "weak", json_output=True, service=service) == 1
        output = json.loads(capsys.readouterr().out)
        assert output["error"] == "validation_failed"
        assert "password" in output["errors"]

    def test_check(self, service, capsys):
        assert cmd_check("alice", service=service) == 0
        cmd_register("alice", PASSWORD, service=service)
        assert cmd_check("alice", json_output=True, service=service) == 1
        assert json.loads(capsys.readouterr().out.strip().splitlines()[-1]) == {
            "username": "alice",
            "available": False,
        }

    def test_rotate_key(self, service, capsys):
        record = service.register("alice", PASSWORD)

        assert cmd_rotate_key(record.id, json_output=True, service=service) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["apiKey"] != record.api_key
        assert service.find_by_api_key(output["apiKey"]).id == record.id

    def test_rotate_key_unknown_user(self, service, capsys):
        assert cmd_rotate_key(999, service=service) == 1
        assert "User not found" in capsys.readouterr().out

    def test_count(self, service, capsys):
        service.register("alice", PASSWORD)
        assert cmd_count(json_output=True, service=service) == 0
        assert json.loads(capsys.readouterr().out) == {"users": 1}


class TestKeyCommands:
    """Tests for static key listing."""

    def test_list_masks_keys(self, capsys):
        """Test listed keys are masked."""
        entries = parse_api_keys("admin-key-123:1:admin:ADMIN,USER", "user-key-456:2:alice:USER")

        assert cmd_list(json_output=True, entries=entries) == 0

        output = json.loads(capsys.readouterr().out)
        assert [row["username"] for row in output] == ["admin", "alice"]
        assert output[0]["key"] == "admin-*******"
        assert "admin-key-123" not in json.dumps(output)

    def test_list_empty(self, capsys):
        assert cmd_list(entries={}) == 0
        assert "No static API keys configured" in capsys.readouterr().out

    def test_list_table(self, capsys):
        entries = parse_api_keys("admin-key-123:1:admin:ADMIN", "")
        cmd_list(entries=entries)
        out = capsys.readouterr().out
        assert "admin" in out
        assert "admin-key-123" not in out
        assert "Total: 1 key(s)" in out


class TestMain:
    """Tests for command dispatch."""

    def test_users_without_subcommand(self, capsys):
        assert main(["users"]) == 1
        assert "Usage: keyward users" in capsys.readouterr().out

    def test_dispatch_register_prompts_for_password(self, service):
        """Test the password is prompted for when not given."""
        with (
            patch("keyward.cli.users.get_identity_service", return_value=service),
            patch("keyward.cli.getpass.getpass", return_value=PASSWORD) as prompt,
        ):
            assert main(["users", "register", "alice"]) == 0

        prompt.assert_called_once()
        assert service.find_by_username("alice") is not None

    def test_errors_return_exit_code(self, capsys):
        with patch("keyward.cli.users.get_identity_service", side_effect=RuntimeError("no db")):
            assert main(["users", "count"]) == 1
        assert "Error: no db" in capsys.readouterr().err
