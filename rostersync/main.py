#!/usr/bin/env python3
"""Roster Sync entry point.

This module provides a unified entry point for both components:
- serve: The roster sync REST API server
- client: The sync client (pull, push, watch, ...)

Usage:
    python -m rostersync.main serve [--port 3000]        # Start API server
    python -m rostersync.main serve --require-api-key    # Per-key rosters
    python -m rostersync.main client pull                # Pull once
    python -m rostersync.main client watch               # Pull every 2 minutes
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the unified argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Roster Sync - applicant roster synchronization server and client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rostersync.main serve --port 3000          Start the API server
  python -m rostersync.main client configure --api-url http://host:3000
  python -m rostersync.main client sync                Pull, then push
  python -m rostersync.main client watch               Pull periodically
""",
    )

    parser.add_argument(
        "-d", "--config-dir",
        type=Path,
        default=None,
        help="Custom configuration directory (default: ~/.config/rostersync/)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="interface", help="Component to run")

    from rostersync.web import add_web_subparser
    add_web_subparser(subparsers)

    from rostersync.cli import add_cli_subparser
    add_cli_subparser(subparsers)

    return parser


def main() -> NoReturn:
    """Main entry point for Roster Sync.

    Parses arguments and dispatches to the server or the client.
    """
    parser = create_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.interface == "serve":
        from rostersync.web import run as run_web
        exit_code = run_web(args.config_dir, args)
    elif args.interface == "client":
        from rostersync.cli import run as run_cli
        exit_code = run_cli(args.config_dir, args)
    else:
        parser.print_help()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
