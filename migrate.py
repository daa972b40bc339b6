#!/usr/bin/env python3
"""
Schema migrations for the tracking service database.

Usage:
    python migrate.py upgrade [REVISION]     # Apply migrations (default: head)
    python migrate.py downgrade REVISION     # Roll back, e.g. -1 or base
    python migrate.py current                # Show the applied revision
    python migrate.py history                # Show migration history
    python migrate.py revision -m MESSAGE    # Autogenerate a revision from the models
"""

import argparse
import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv

load_dotenv(override=True)
from logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent / "migrations" / "alembic.ini"


def alembic_config() -> Config:
    config = Config(str(CONFIG_PATH))
    config.set_main_option("script_location", str(CONFIG_PATH.parent))
    return config


def main() -> None:
    parser = argparse.ArgumentParser(description="Mail Tracker migrations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upgrade = subparsers.add_parser("upgrade", help="Apply migrations")
    upgrade.add_argument("revision", nargs="?", default="head")

    downgrade = subparsers.add_parser("downgrade", help="Roll back migrations")
    downgrade.add_argument("revision")

    subparsers.add_parser("current", help="Show the applied revision")
    subparsers.add_parser("history", help="Show migration history")

    revision = subparsers.add_parser("revision", help="Autogenerate a revision")
    revision.add_argument("-m", "--message", required=True)

    args = parser.parse_args()
    setup_logging()
    config = alembic_config()

    try:
        if args.command == "upgrade":
            command.upgrade(config, args.revision)
        elif args.command == "downgrade":
            command.downgrade(config, args.revision)
        elif args.command == "current":
            command.current(config, verbose=True)
        elif args.command == "history":
            command.history(config, verbose=True)
        elif args.command == "revision":
            command.revision(config, message=args.message, autogenerate=True)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(1)
    except Exception:
        logger.exception(f"Migration command failed; command: {args.command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
