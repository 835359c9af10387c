"""User management CLI.

Commands that act on the credential store directly, without the HTTP layer.
"""

import json

from ..auth.errors import AuthFailure
from ..auth.keys import mask_api_key
from ..auth.passwords import PasswordHasher
from ..auth.service import IdentityService
from ..auth.store import CredentialStore
from ..config.settings import get_settings


def get_identity_service() -> IdentityService:
    """Build an identity service over the configured credential store."""
    settings = get_settings()
    store = CredentialStore(settings.database_path, timeout=settings.database_timeout)
    store.initialize()
    return IdentityService(store, PasswordHasher(rounds=settings.bcrypt_rounds))


def _print_failure(failure: AuthFailure, json_output: bool) -> None:
    if json_output:
        payload = {"error": failure.kind.value, "message": failure.message}
        if failure.field_errors:
            payload["errors"] = dict(failure.field_errors)
        print(json.dumps(payload))
        return

    print(f"Error: {failure.message}")
    for field, message in sorted(failure.field_errors.items()):
        print(f"  {field}: {message}")


def cmd_register(
    username: str,
    password: str,
    json_output: bool = False,
    service: IdentityService | None = None,
) -> int:
    """Register a user and print their API key.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    service = service or get_identity_service()
    result = service.register(username, password)
    if isinstance(result, AuthFailure):
        _print_failure(result, json_output)
        return 1

    if json_output:
        print(
            json.dumps(
                {
                    "userId": result.id,
                    "username": result.username,
                    "apiKey": result.api_key,
                }
            )
        )
    else:
        print(f"Registered user: {result.username} (ID: {result.id})")
        print()
        print(f"API Key: {result.api_key}")
        print()
        print("IMPORTANT: Save this key now. It will not be shown again.")

    return 0


def cmd_check(username: str, json_output: bool = False, service: IdentityService | None = None) -> int:
    """Check username availability. Exit code 0 when available, 1 when taken."""
    service = service or get_identity_service()
    available = service.is_username_available(username)

    if json_output:
        print(json.dumps({"username": username, "available": available}))
    else:
        print(f"Username '{username}' is {'available' if available else 'already taken'}")

    return 0 if available else 1


def cmd_rotate_key(user_id: int, json_output: bool = False, service: IdentityService | None = None) -> int:
    """Issue a new API key for a user."""
    service = service or get_identity_service()
    result = service.regenerate_key(user_id)
    if isinstance(result, AuthFailure):
        _print_failure(result, json_output)
        return 1

    if json_output:
        print(json.dumps({"userId": user_id, "apiKey": result}))
    else:
        print(f"New API key for user {user_id}: {result}")
        print(f"The previous key no longer works. Share only the new key ({mask_api_key(result)}).")

    return 0


def cmd_count(json_output: bool = False, service: IdentityService | None = None) -> int:
    """Print the number of registered users."""
    service = service or get_identity_service()
    count = service.user_count()

    if json_output:
        print(json.dumps({"users": count}))
    else:
        print(f"Registered users: {count}")

    return 0
