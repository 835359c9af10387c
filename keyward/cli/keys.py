"""Static API key CLI.

Shows the keys configured through ``KEYWARD_ADMIN_API_KEYS`` and
``KEYWARD_USER_API_KEYS``. Raw keys are only ever printed masked.
"""

import json

from ..auth.keys import StaticKeyEntry, mask_api_key, parse_api_keys
from ..config.settings import get_settings


def _format_roles(roles) -> str:
    return ", ".join(sorted(roles)) if roles else "-"


def cmd_list(json_output: bool = False, entries: dict[str, StaticKeyEntry] | None = None) -> int:
    """List configured static keys.

    Args:
        json_output: Output as JSON.
        entries: Parsed entries (read from settings when omitted).

    Returns:
        Exit code (always 0).
    """
    if entries is None:
        settings = get_settings()
        entries = parse_api_keys(settings.admin_api_keys, settings.user_api_keys)

    rows = sorted(entries.values(), key=lambda e: e.user_id)

    if json_output:
        print(
            json.dumps(
                [
                    {
                        "userId": entry.user_id,
                        "username": entry.username,
                        "roles": sorted(entry.roles),
                        "key": mask_api_key(entry.api_key),
                    }
                    for entry in rows
                ],
                indent=2,
            )
        )
        return 0

    if not rows:
        print("No static API keys configured.")
        print("Set KEYWARD_ADMIN_API_KEYS or KEYWARD_USER_API_KEYS (key:userId:username:ROLES|...)")
        return 0

    print(f"{'ID':<8} {'USERNAME':<20} {'ROLES':<20} {'KEY':<20}")
    print("-" * 70)
    for entry in rows:
        print(
            f"{entry.user_id:<8} {entry.username:<20} {_format_roles(entry.roles):<20} "
            f"{mask_api_key(entry.api_key):<20}"
        )
    print()
    print(f"Total: {len(rows)} key(s)")

    return 0
