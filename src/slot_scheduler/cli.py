"""CLI for slot-scheduler.

Usage:
    slot-scheduler init                        # Create directories, show setup instructions
    slot-scheduler status                      # Show configuration and token status
    slot-scheduler auth login                  # Interactive Google OAuth login
    slot-scheduler auth status                 # Show OAuth token status
    slot-scheduler auth logout [--revoke]      # Clear (and optionally revoke) the token
    slot-scheduler config show                 # Show scheduler settings
    slot-scheduler config set <key> <value>    # Change one setting
    slot-scheduler config reset                # Restore default settings
    slot-scheduler run --name "Deep work" --date-start 2026-11-02 --date-end 2026-11-04 \
        --task-start 10:00 --task-end 15:00
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from slot_scheduler.exceptions import SchedulerError

CONFIG_KEYS = ("calendar_id", "slot_minutes", "timezone", "client_id", "client_secret", "redirect_uri")
SECRET_KEYS = ("client_secret",)


def cmd_init() -> int:
    """Initialize the slot-scheduler directory structure."""
    from slot_scheduler.config import (
        CLIENT_ID_ENV,
        CLIENT_SECRET_ENV,
        CONFIG_FILE,
        ENV_FILE,
        GOOGLE_CREDENTIALS,
        GOOGLE_DIR,
        GOOGLE_TOKEN,
        HOME_DIR,
        ensure_google_dir,
    )

    print("=" * 60)
    print("SLOT-SCHEDULER SETUP")
    print("=" * 60)
    print()
    print(f"Home: {HOME_DIR}")
    print()

    ensure_google_dir()
    print(f"Created: {GOOGLE_DIR}/")
    print()

    print("File locations:")
    print()
    print(f"  {ENV_FILE}")
    print(f"    {CLIENT_ID_ENV}, {CLIENT_SECRET_ENV}")
    print()
    print(f"  {CONFIG_FILE}")
    print("    Scheduler settings (managed with 'slot-scheduler config')")
    print()
    print(f"  {GOOGLE_CREDENTIALS}")
    print("    OAuth client file from Google Cloud Console (client id fallback)")
    print()
    print(f"  {GOOGLE_TOKEN}")
    print("    OAuth tokens (created by 'slot-scheduler auth login')")
    print()
    print("-" * 60)
    print()
    print("Next: set a client secret, then run 'slot-scheduler auth login'")
    return 0


def cmd_status() -> int:
    """Show configuration and token status."""
    from slot_scheduler.config import get_setup_status, load_config

    status = get_setup_status()
    config = load_config()

    print("=" * 60)
    print("SLOT-SCHEDULER STATUS")
    print("=" * 60)
    print()
    print(f"Home: {status['home']}")
    print()
    print("Files:")
    print(f"  .env:               {'[x]' if status['env_file'] else '[ ]'}")
    print(f"  config.json:        {'[x]' if status['config_file'] else '[ ]'}")
    print(f"  credentials.json:   {'[x]' if status['google']['credentials'] else '[ ]'}")
    print(f"  token.json:         {'[x]' if status['google']['token'] else '[ ]'}")
    print()
    print("Client:")
    print(f"  client id:          {'[x]' if config.client_id or status['client_id_env'] else '[ ]'}")
    print(f"  client secret:      {'[x]' if config.client_secret or status['client_secret_env'] else '[ ]'}")
    print()
    return auth_status()


def _manager(no_browser: bool = False):
    from slot_scheduler.google import ConsoleAuthorizer, CredentialManager

    return CredentialManager(authorizer=ConsoleAuthorizer(open_browser=not no_browser))


def auth_login(no_browser: bool = False) -> int:
    """Interactive Google OAuth login."""
    print("=" * 60)
    print("SLOT-SCHEDULER GOOGLE LOGIN")
    print("=" * 60)

    manager = _manager(no_browser)

    if manager.is_authenticated():
        print("\nReplacing the current valid token with a new authorization")

    print("\nA browser window will open for Google consent.")
    print("After granting access, copy the redirect URL back here.\n")

    try:
        asyncio.run(manager.start_auth_flow())
    except SchedulerError as e:
        print(f"\nError [{e.kind}]: {e}")
        return 1

    print("\nToken saved successfully!")
    return auth_status()


def auth_status() -> int:
    """Show Google OAuth token status."""
    info = _manager().get_token_info()

    if info["status"] == "no_token":
        print("No token found - run 'slot-scheduler auth login'")
        return 1

    print(f"Status        : {info['status']}")
    print(f"Expires in    : {info['expires_in']}")
    print(f"Refresh token : {'yes' if info['has_refresh_token'] else 'no'}")
    return 0


def auth_logout(revoke: bool = False) -> int:
    """Clear the stored token, revoking it at Google first if asked."""
    manager = _manager()

    if revoke:
        asyncio.run(manager.revoke_credential())
        print("Token revoked and local cache cleared")
    else:
        manager.clear_credential()
        print("Local token cleared")
    return 0


def config_show() -> int:
    """Print effective scheduler settings."""
    from slot_scheduler.config import load_config

    try:
        config = load_config()
        tz = config.effective_timezone()
        slot_minutes = config.effective_slot_minutes()
    except SchedulerError as e:
        print(f"Error [{e.kind}]: {e}")
        return 1

    print(f"calendar_id   : {config.effective_calendar_id()}")
    print(f"slot_minutes  : {slot_minutes}")
    print(f"timezone      : {tz.key}")
    print(f"redirect_uri  : {config.effective_redirect_uri()}")
    print(f"client_id     : {config.client_id or '(default)'}")
    print(f"client_secret : {'(set)' if config.client_secret else '(default)'}")
    return 0


def config_set(key: str, value: str) -> int:
    """Store one scheduler setting."""
    from slot_scheduler.config import SchedulerConfig, load_config, save_config

    if key not in CONFIG_KEYS:
        print(f"Error: Unknown key '{key}'. Use one of: {', '.join(CONFIG_KEYS)}")
        return 1

    try:
        data = load_config().to_dict()
        data[key] = value
        config = SchedulerConfig.from_dict(data)
        config.effective_timezone()
        path = save_config(config)
    except SchedulerError as e:
        print(f"Error [{e.kind}]: {e}")
        return 1

    shown = "(set)" if key in SECRET_KEYS else value
    print(f"Saved {key} = {shown} to {path}")
    return 0


def config_reset() -> int:
    """Restore default scheduler settings."""
    from slot_scheduler.config import SchedulerConfig, save_config

    path = save_config(SchedulerConfig())
    print(f"Settings reset to defaults in {path}")
    return 0


def run_scheduler(args: argparse.Namespace) -> int:
    """Create calendar blocks for the requested window."""
    from slot_scheduler.calendar import CalendarGateway
    from slot_scheduler.scheduling import SchedulingRequest
    from slot_scheduler.scheduling.orchestrator import SchedulerOrchestrator

    payload = {
        "eventName": args.name,
        "eventColor": args.color,
        "dateStart": args.date_start,
        "dateEnd": args.date_end,
        "workdayStart": args.workday_start,
        "workdayEnd": args.workday_end,
        "taskStart": args.task_start,
        "taskEnd": args.task_end,
    }

    async def _run(request: SchedulingRequest):
        async with CalendarGateway() as gateway:
            return await SchedulerOrchestrator(_manager(args.no_browser), gateway).run(request)

    try:
        # Validate before touching the network or prompting for consent
        request = SchedulingRequest.from_mapping(payload)
        result = asyncio.run(_run(request))
    except SchedulerError as e:
        if args.json:
            print(json.dumps({"success": False, "kind": e.kind, "error": str(e)}))
        else:
            print(f"Error [{e.kind}]: {e}")
        return 1

    if args.json:
        print(json.dumps({"success": True, **result.to_dict()}, indent=2))
        return 0

    print(f"Slots considered : {result.total_slots}")
    print(f"Events created   : {result.total_created}")
    for event in result.events:
        if event.start is None or event.end is None:
            continue
        print(f"  {event.start:%Y-%m-%d %H:%M} - {event.end:%H:%M}  {event.html_link or ''}")
    print()
    print(result.message)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="slot-scheduler",
        description="Fill free Google Calendar time with fixed-length task blocks",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize directories")
    subparsers.add_parser("status", help="Show configuration and token status")

    # auth subcommand
    auth_parser = subparsers.add_parser("auth", help="Google OAuth management")
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command", help="Command")

    login_parser = auth_subparsers.add_parser("login", help="Interactive OAuth login")
    login_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )
    auth_subparsers.add_parser("status", help="Show token status")
    logout_parser = auth_subparsers.add_parser("logout", help="Clear stored token")
    logout_parser.add_argument(
        "--revoke",
        action="store_true",
        help="Also revoke the token at Google",
    )

    # config subcommand
    config_parser = subparsers.add_parser("config", help="Scheduler settings")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Command")
    config_subparsers.add_parser("show", help="Show settings")
    set_parser = config_subparsers.add_parser("set", help="Change a setting")
    set_parser.add_argument("key", choices=CONFIG_KEYS)
    set_parser.add_argument("value")
    config_subparsers.add_parser("reset", help="Restore defaults")

    # run
    run_parser = subparsers.add_parser("run", help="Create blocks in free calendar time")
    run_parser.add_argument("--name", required=True, help="Event title")
    run_parser.add_argument("--color", default=None, help="Calendar color id (1-11)")
    run_parser.add_argument("--date-start", required=True, help="First day, YYYY-MM-DD")
    run_parser.add_argument("--date-end", required=True, help="Last day, YYYY-MM-DD")
    run_parser.add_argument("--workday-start", default="07:00", help="Working hours start (default: 07:00)")
    run_parser.add_argument("--workday-end", default="17:00", help="Working hours end (default: 17:00)")
    run_parser.add_argument("--task-start", required=True, help="Task start time on the first day, HH:MM")
    run_parser.add_argument("--task-end", required=True, help="Task end time on the last day, HH:MM")
    run_parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    run_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically if authorization is needed",
    )

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status()

    if args.command == "run":
        return run_scheduler(args)

    if args.command == "auth":
        if args.auth_command == "login":
            return auth_login(args.no_browser)
        elif args.auth_command == "status":
            return auth_status()
        elif args.auth_command == "logout":
            return auth_logout(args.revoke)
        else:
            auth_parser.print_help()
            return 0

    if args.command == "config":
        if args.config_command == "show":
            return config_show()
        elif args.config_command == "set":
            return config_set(args.key, args.value)
        elif args.config_command == "reset":
            return config_reset()
        else:
            config_parser.print_help()
            return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
