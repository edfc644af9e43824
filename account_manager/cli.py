#!/usr/bin/env python3
"""
Command-line interface for the Roblox account manager.

Usage:
    roblox-accounts add [--cookie COOKIE] [--password PASSWORD]
    roblox-accounts relogin ACCOUNT
    roblox-accounts list [--group GROUP]
    roblox-accounts delete ACCOUNT
    roblox-accounts browser ACCOUNT
    roblox-accounts launch ACCOUNT PLACE_ID [--job JOB_ID] [--private]
    roblox-accounts follow ACCOUNT USER_ID
    roblox-accounts set-server ACCOUNT PLACE_ID JOB_ID
    roblox-accounts alias ACCOUNT [VALUE]
    roblox-accounts description ACCOUNT [VALUE]
    roblox-accounts serve [--host HOST] [--port PORT]

Configuration is read from the environment (ACCOUNTS_FILE, STORAGE_BACKEND,
API_PASSWORD, ...); see account_manager.config.
"""

import argparse
import sys

from .browser_capture import BrowserError
from .container import Container, container as default_container
from .logger import logger
from .models import CapturedCredential


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="roblox-accounts", description="Manage and launch Roblox accounts")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Add an account (opens the login page unless --cookie is given)")
    add.add_argument("--cookie", help=".ROBLOSECURITY cookie value")
    add.add_argument("--password", default="", help="Account password to keep with the cookie")

    relogin = commands.add_parser("relogin", help="Replace the session cookie of an existing account")
    relogin.add_argument("account")
    relogin.add_argument("--cookie", help=".ROBLOSECURITY cookie value")

    listing = commands.add_parser("list", help="List saved accounts")
    listing.add_argument("--group", help="Only accounts in this group")

    delete = commands.add_parser("delete", help="Delete an account")
    delete.add_argument("account")

    browser = commands.add_parser("browser", help="Open a browser logged in as an account")
    browser.add_argument("account")

    launch = commands.add_parser("launch", help="Launch a game with an account")
    launch.add_argument("account")
    launch.add_argument("place_id", nargs="?", help="Place ID (default: last used)")
    launch.add_argument("--job", default="", help="Job ID or private server link")
    launch.add_argument("--private", action="store_true", help="Treat --job as a private server access code")

    follow = commands.add_parser("follow", help="Join the server a user is playing in")
    follow.add_argument("account")
    follow.add_argument("user_id")

    set_server = commands.add_parser("set-server", help="Pick the server for an account's next launch")
    set_server.add_argument("account")
    set_server.add_argument("place_id")
    set_server.add_argument("job_id")

    for name in ("alias", "description"):
        meta = commands.add_parser(name, help=f"Show or set an account's {name}")
        meta.add_argument("account")
        meta.add_argument("value", nargs="?")

    serve = commands.add_parser("serve", help="Run the control API")
    serve.add_argument("--host", help="Host to bind to (default: API_HOST or 127.0.0.1)")
    serve.add_argument("--port", type=int, help="Port to listen on (default: API_PORT or 7963)")

    return parser


def _capture(deps: Container, cookie: str | None, password: str = "") -> CapturedCredential:
    if cookie:
        return CapturedCredential(session_token=cookie, password=password)
    return deps.credential_capture.capture_credential()


def _print_accounts(deps: Container, group: str | None) -> int:
    accounts = deps.registry.list_accounts(group=group)
    if not accounts:
        print("No accounts saved")
        return 0
    print("\n=== Saved Accounts ===")
    for index, account in enumerate(accounts, start=1):
        extra = f" [{account.alias}]" if account.alias else ""
        last_used = account.last_used_at.strftime("%Y-%m-%d %H:%M") if account.last_used_at else "never"
        print(
            f"{index}. {account.account_key}{extra} "
            f"(Added: {account.added_at:%Y-%m-%d %H:%M}, Last used: {last_used})"
        )
    return 0


def run(args: argparse.Namespace, deps: Container) -> int:
    registry = deps.registry

    if args.command == "add":
        try:
            credential = _capture(deps, args.cookie, args.password)
        except (TimeoutError, ValueError, BrowserError) as e:
            print(f"Login failed: {e}", file=sys.stderr)
            return 1
        account_key = registry.add(credential.session_token, credential.password)
        print(f"Added account {account_key}")
        return 0

    if args.command == "relogin":
        if args.account not in registry:
            print(f'Account "{args.account}" not found', file=sys.stderr)
            return 1
        try:
            credential = _capture(deps, args.cookie)
        except (TimeoutError, ValueError, BrowserError) as e:
            print(f"Login failed: {e}", file=sys.stderr)
            return 1
        registry.update_session_token(args.account, credential.session_token, credential.password)
        print(f"Session refreshed for {args.account}")
        return 0

    if args.command == "list":
        return _print_accounts(deps, args.group)

    if args.command == "delete":
        if registry.delete(args.account):
            print(f"Deleted account {args.account}")
            return 0
        print(f'Account "{args.account}" not found', file=sys.stderr)
        return 1

    if args.command == "browser":
        account = registry.get(args.account)
        if account is None:
            print(f'Account "{args.account}" not found', file=sys.stderr)
            return 1
        try:
            deps.account_browser.open(account.session_token)
        except BrowserError as e:
            print(f"Could not open browser: {e}", file=sys.stderr)
            return 1
        print(f"Browser opened for {args.account}")
        return 0

    if args.command in ("launch", "follow"):
        if args.command == "follow":
            result = deps.game_launcher.follow_user(args.account, args.user_id)
        else:
            place_id = args.place_id or registry.last_used_target or ""
            result = deps.game_launcher.launch(args.account, place_id, args.job, join_private=args.private)
        print(result.message, file=sys.stdout if result.success else sys.stderr)
        return 0 if result.success else 1

    if args.command == "set-server":
        if registry.set_override(args.account, args.place_id, args.job_id):
            print(f"Server set: Account {args.account} will join server {args.job_id} for place {args.place_id}")
            return 0
        print(f'Account "{args.account}" not found', file=sys.stderr)
        return 1

    if args.command in ("alias", "description"):
        if args.account not in registry:
            print(f'Account "{args.account}" not found', file=sys.stderr)
            return 1
        if args.value is None:
            getter = registry.get_alias if args.command == "alias" else registry.get_description
            print(getter(args.account))
            return 0
        setter = registry.set_alias if args.command == "alias" else registry.set_description
        setter(args.account, args.value)
        print(f"{args.command.capitalize()} set for account {args.account}")
        return 0

    if args.command == "serve":
        import uvicorn

        from .app import create_app

        settings = deps.settings
        host = args.host or settings.api_host
        port = args.port or settings.api_port
        logger.info(f"Starting control API on http://{host}:{port}")
        uvicorn.run(create_app(password=settings.api_password, deps=deps), host=host, port=port, log_config=None)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None, deps: Container | None = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args, deps or default_container)


if __name__ == "__main__":
    sys.exit(main())
