"""Keyward CLI.

Provides command-line interface for managing Keyward, including:
- Starting the server
- Registering users and rotating their keys
- Inspecting configured static keys
"""

import argparse
import getpass
import sys

from .. import __version__


def _add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="keyward",
        description="Keyward - API key authentication and identity service",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command (default behavior)
    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the Keyward server",
        description="Start the FastAPI server",
    )
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: from settings)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: from settings)",
    )

    # users command
    users_parser = subparsers.add_parser(
        "users",
        help="Manage registered users",
        description="Register users, check usernames and rotate keys",
    )
    users_subparsers = users_parser.add_subparsers(
        dest="users_command",
        help="User commands",
    )

    # users register
    users_register = users_subparsers.add_parser(
        "register",
        help="Register a new user and print their API key",
    )
    users_register.add_argument("username", help="Username (3-50 letters, digits, underscores)")
    users_register.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted)",
    )
    _add_json_flag(users_register)

    # users check
    users_check = users_subparsers.add_parser(
        "check",
        help="Check whether a username is available",
    )
    users_check.add_argument("username", help="Username to check")
    _add_json_flag(users_check)

    # users rotate-key
    users_rotate = users_subparsers.add_parser(
        "rotate-key",
        help="Issue a new API key for a user",
    )
    users_rotate.add_argument("user_id", type=int, help="User ID")
    _add_json_flag(users_rotate)

    # users count
    users_count = users_subparsers.add_parser(
        "count",
        help="Show the number of registered users",
    )
    _add_json_flag(users_count)

    # keys command
    keys_parser = subparsers.add_parser(
        "keys",
        help="Inspect static API keys",
        description="Show keys configured through the environment (masked)",
    )
    keys_subparsers = keys_parser.add_subparsers(
        dest="keys_command",
        help="Key commands",
    )
    keys_list = keys_subparsers.add_parser(
        "list",
        help="List configured static keys",
    )
    _add_json_flag(keys_list)

    return parser


def run_serve(args: argparse.Namespace) -> int:
    """Run the server command."""
    from ..config.settings import get_settings
    from ..main import run as run_server

    settings = get_settings()

    # Override settings if provided
    if args.host:
        settings.api_host = args.host
    if args.port:
        settings.api_port = args.port

    run_server()
    return 0


def run_users(args: argparse.Namespace) -> int:
    """Run user commands."""
    from .users import cmd_check, cmd_count, cmd_register, cmd_rotate_key

    if args.users_command == "register":
        password = args.password
        if password is None:
            password = getpass.getpass("Password: ")
        return cmd_register(args.username, password, json_output=args.json_output)
    elif args.users_command == "check":
        return cmd_check(args.username, json_output=args.json_output)
    elif args.users_command == "rotate-key":
        return cmd_rotate_key(args.user_id, json_output=args.json_output)
    elif args.users_command == "count":
        return cmd_count(json_output=args.json_output)
    else:
        print("Usage: keyward users <command>")
        print("Commands: register, check, rotate-key, count")
        return 1


def run_keys(args: argparse.Namespace) -> int:
    """Run static key commands."""
    from .keys import cmd_list

    if args.keys_command == "list":
        return cmd_list(json_output=args.json_output)

    print("Usage: keyward keys list")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Default to serve if no command given
    if args.command is None:
        args.command = "serve"
        args.host = None
        args.port = None

    try:
        if args.command == "serve":
            return run_serve(args)
        elif args.command == "users":
            return run_users(args)
        elif args.command == "keys":
            return run_keys(args)
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
