"""API key generation, masking and static key configuration parsing."""

import logging
import re
import secrets
from dataclasses import dataclass

from .models import normalize_roles

logger = logging.getLogger("keyward.auth.keys")

API_KEY_PREFIX = "ak_"
API_KEY_PATTERN = re.compile(r"^ak_[0-9a-f]{32}$")

# Visible prefix length when masking keys for logs
MASK_VISIBLE_CHARS = 6

ENTRY_SEPARATOR = "|"
FIELD_SEPARATOR = ":"
ROLE_SEPARATOR = ","


def generate_api_key() -> str:
    """Generate a secure random API key.

    Format: ak_<32 lowercase hex chars> (16 random bytes).
    Uniqueness is enforced by the credential store, not by this function.
    """
    return f"{API_KEY_PREFIX}{secrets.token_hex(16)}"


def is_api_key_format(value: str) -> bool:
    """Check whether a string looks like a generated API key."""
    return bool(API_KEY_PATTERN.match(value))


def mask_api_key(api_key: str | None) -> str:
    """Mask an API key for logging.

    The first six characters are kept and the rest replaced by ``*``.
    Keys of six characters or fewer are masked entirely.
    """
    if not api_key:
        return ""
    if len(api_key) <= MASK_VISIBLE_CHARS:
        return "*" * len(api_key)
    return api_key[:MASK_VISIBLE_CHARS] + "*" * (len(api_key) - MASK_VISIBLE_CHARS)


@dataclass(frozen=True)
class StaticKeyEntry:
    """One API key declared in process configuration."""

    api_key: str
    user_id: int
    username: str
    roles: frozenset[str]

    def summary(self) -> str:
        """Key-free summary, e.g. ``alice(ADMIN,USER)``."""
        return f"{self.username}({','.join(sorted(self.roles))})"


def parse_key_entry(entry: str) -> StaticKeyEntry | None:
    """Parse a single ``key:userId:username:role1,role2`` entry.

    Returns:
        The parsed entry, or None if the entry is malformed.
    """
    parts = entry.split(FIELD_SEPARATOR)
    if len(parts) < 4:
        return None

    api_key = parts[0].strip()
    username = parts[2].strip()
    if not api_key or not username:
        return None

    try:
        user_id = int(parts[1].strip())
    except ValueError:
        return None

    roles = normalize_roles(parts[3].split(ROLE_SEPARATOR))
    return StaticKeyEntry(api_key=api_key, user_id=user_id, username=username, roles=roles)


def parse_key_string(key_string: str | None) -> dict[str, StaticKeyEntry]:
    """Parse a ``|``-separated list of key entries.

    Malformed entries are skipped with a warning; parsing never raises.

    Args:
        key_string: Configuration value, e.g.
            ``"k1:1:alice:USER|k2:2:bob:ADMIN,USER"``.

    Returns:
        Mapping of API key to entry.
    """
    if not key_string or not key_string.strip():
        return {}

    result: dict[str, StaticKeyEntry] = {}
    for raw_entry in key_string.split(ENTRY_SEPARATOR):
        if not raw_entry.strip():
            continue
        parsed = parse_key_entry(raw_entry)
        if parsed is None:
            # Only the masked key part is logged; the entry may hold a real key
            logger.warning(
                f"Skipping malformed API key entry: {mask_api_key(raw_entry.split(FIELD_SEPARATOR)[0].strip())}"
            )
            continue
        result[parsed.api_key] = parsed
    return result


def parse_api_keys(admin_keys: str | None, user_keys: str | None) -> dict[str, StaticKeyEntry]:
    """Parse admin and user key strings into one mapping.

    User entries are applied after admin entries, so a duplicate key in the
    user string replaces the admin one.
    """
    result = parse_key_string(admin_keys)
    result.update(parse_key_string(user_keys))
    return result
