#!/usr/bin/env python3
"""Command-line sync client for Roster Sync.

Commands:
    pull       Replace the local cache with the server roster
    push       Push the local cache and store the merged roster
    sync       Pull, then push
    status     Show local sync settings and the server's roster summary
    watch      Pull on a timer and push cache edits until interrupted
    configure  Set API URL, API key, or enable/disable sync
    register   Obtain an API key from the server and save it

All commands accept --format json for machine-readable output.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from rostersync.core.config import Config
from rostersync.core.sync_client import SyncClient, SyncResult
from rostersync.core.timestamp_utils import format_timestamp
from rostersync.core.validation import ValidationError


def _result_dict(result: SyncResult) -> Dict[str, Any]:
    return {
        "action": result.action,
        "success": result.success,
        "skipped": result.skipped,
        "applicants": result.applicants,
        "groups": result.groups,
        "errors": result.errors,
    }


def print_result(result: SyncResult, format_type: str = "text") -> int:
    """Print a SyncResult and return the matching exit code."""
    if format_type == "json":
        print(json.dumps(_result_dict(result), indent=2))
    elif result.skipped:
        print(f"{result.action.capitalize()} skipped: sync is disabled.")
    elif result.success:
        print(f"{result.action.capitalize()} OK: {result.applicants} applicants, {result.groups} groups")
    else:
        print(f"{result.action.capitalize()} failed:")
        for error in result.errors:
            print(f"  - {error}")
    return 0 if result.success else 1


def cmd_pull(client: SyncClient, args: argparse.Namespace) -> int:
    """Pull the server roster into the local cache."""
    return print_result(client.pull(), args.format)


def cmd_push(client: SyncClient, args: argparse.Namespace) -> int:
    """Push the local cache to the server."""
    return print_result(client.push(), args.format)


def cmd_sync(client: SyncClient, args: argparse.Namespace) -> int:
    """Pull, then push."""
    return print_result(client.sync_now(), args.format)


def cmd_status(client: SyncClient, config: Config, args: argparse.Namespace) -> int:
    """Show local sync settings and the server's roster summary.

    Returns:
        Exit code (0 if the server is reachable, 1 otherwise)
    """
    local = client.cache.load_roster()
    server = client.check_status()

    if args.format == "json":
        print(json.dumps({
            "api_url": config.get_api_url(),
            "sync_enabled": config.is_sync_enabled(),
            "last_sync": config.get_last_sync(),
            "local_applicants": len(local.applicants),
            "local_groups": len(local.groups),
            "server": server,
        }, indent=2))
    else:
        print(f"API URL: {config.get_api_url()}")
        print(f"Sync Enabled: {config.is_sync_enabled()}")
        print(f"Last Sync: {format_timestamp(config.get_last_sync())}")
        print(f"Local Cache: {len(local.applicants)} applicants, {len(local.groups)} groups")
        if server["reachable"]:
            print(
                f"Server: {server.get('applicantCount', 0)} applicants, "
                f"{server.get('groupCount', 0)} groups, "
                f"modified {format_timestamp(server.get('lastModified'))}"
            )
        else:
            print(f"Server: unreachable ({server['error']})")

    return 0 if server["reachable"] else 1


def cmd_watch(client: SyncClient, args: argparse.Namespace) -> int:
    """Run the periodic pull until interrupted."""
    task = client.start_auto_sync(
        interval=args.interval,
        initial_delay=args.initial_delay,
        watch_interval=args.watch_interval,
    )
    print(
        f"Auto-sync running: first pull in {task.initial_delay}s, "
        f"then every {task.interval}s. Edits to {client.cache.path} are pushed. "
        f"Press Ctrl+C to stop."
    )
    try:
        while not task.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        print("\nStopping auto-sync.")
    finally:
        client.stop_auto_sync()
    return 0


def cmd_configure(config: Config, args: argparse.Namespace) -> int:
    """Update client sync settings."""
    if args.api_url:
        config.set_api_url(args.api_url)
    if args.api_key is not None:
        config.set_api_key(args.api_key or None)
    if args.enable:
        config.set_sync_enabled(True)
    if args.disable:
        config.set_sync_enabled(False)

    sync_config = config.get_sync_config()
    if sync_config.get("apiKey"):
        sync_config["apiKey"] = "****"
    if args.format == "json":
        print(json.dumps(sync_config, indent=2))
    else:
        for key, value in sync_config.items():
            print(f"{key}: {value}")
    return 0


def cmd_register(client: SyncClient, args: argparse.Namespace) -> int:
    """Register with the server and save the returned API key."""
    response = client.register(args.email, args.password)
    if not response["success"]:
        print(f"Registration failed: {response['error']}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(response["data"], indent=2))
    else:
        print(f"Registered {response['data'].get('email')}; API key saved.")
    return 0


def add_cli_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Add client subparser and its arguments.

    Args:
        subparsers: Parent subparsers object to add the client parser to
    """
    cli_parser = subparsers.add_parser(
        "client",
        help="Run the roster sync client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    cli_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)"
    )

    cli_subparsers = cli_parser.add_subparsers(dest="cli_command", help="Client commands")

    cli_subparsers.add_parser("pull", help="Replace the local cache with the server roster")
    cli_subparsers.add_parser("push", help="Push local cache and store the merged roster")
    cli_subparsers.add_parser("sync", help="Pull, then push")
    cli_subparsers.add_parser("status", help="Show local and server sync status")

    watch_parser = cli_subparsers.add_parser("watch", help="Pull periodically until interrupted")
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between pulls (default: from config, 120)"
    )
    watch_parser.add_argument(
        "--initial-delay",
        type=float,
        default=None,
        help="Seconds before the first pull (default: from config, 3)"
    )
    watch_parser.add_argument(
        "--watch-interval",
        type=float,
        default=None,
        help="Seconds between checks of the cache file for edits (default: from config, 1)"
    )

    configure_parser = cli_subparsers.add_parser("configure", help="Update sync settings")
    configure_parser.add_argument("--api-url", type=str, default=None, help="Server base URL")
    configure_parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="API key to send (empty string to remove)"
    )
    toggle = configure_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Enable sync")
    toggle.add_argument("--disable", action="store_true", help="Disable sync")

    register_parser = cli_subparsers.add_parser("register", help="Register and save an API key")
    register_parser.add_argument("email", type=str, help="Email address")
    register_parser.add_argument("password", type=str, help="Password")


def run(config_dir: Optional[Path], args: argparse.Namespace) -> int:
    """Run client CLI with given arguments.

    Args:
        config_dir: Custom configuration directory or None for default
        args: Parsed command-line arguments (should have cli_command attribute)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not getattr(args, "cli_command", None):
        print("Error: No client command specified. Use --help for available commands.", file=sys.stderr)
        return 1

    config = Config(config_dir=config_dir)

    try:
        if args.cli_command == "configure":
            return cmd_configure(config, args)

        client = SyncClient(config)
        if args.cli_command == "pull":
            return cmd_pull(client, args)
        elif args.cli_command == "push":
            return cmd_push(client, args)
        elif args.cli_command == "sync":
            return cmd_sync(client, args)
        elif args.cli_command == "status":
            return cmd_status(client, config, args)
        elif args.cli_command == "watch":
            return cmd_watch(client, args)
        elif args.cli_command == "register":
            return cmd_register(client, args)
        else:
            print(f"Error: Unknown command '{args.cli_command}'", file=sys.stderr)
            return 1
    except ValidationError as e:
        print(f"Error: Invalid {e.field} - {e.message}", file=sys.stderr)
        return 1
