#!/usr/bin/env python3
"""
Mail Tracker management commands

Usage:
    python manage.py [--mode MODE] [--sort SORT]

Modes:
    - create-tables: Create the emails/opens schema (default)
    - drop-tables: Drop the schema
    - list: List tracked emails with their open counts
    - stats: Print aggregate open statistics

Environment Variables:
    DATABASE_URL: async SQLAlchemy URL, SQLite by default
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv(override=True)
from app.container import ApplicationContainer  # noqa: E402
from app.db import fastapi_sqlalchemy_context  # noqa: E402
from app.repos.tracked_email import EmailSort  # noqa: E402
from logging_config import setup_logging  # noqa: E402

setup_logging()

logger = logging.getLogger(__name__)

# Global container instance
container = ApplicationContainer()


async def create_tables() -> None:
    database_manager = container.database_manager()
    database_manager.init_db()
    try:
        await database_manager.create_tables()
    finally:
        await database_manager.close()


async def drop_tables() -> None:
    database_manager = container.database_manager()
    database_manager.init_db()
    try:
        await database_manager.drop_tables()
    finally:
        await database_manager.close()


async def list_emails(sort: EmailSort) -> None:
    """List all tracked emails in the database."""
    async with fastapi_sqlalchemy_context():
        tracking_controller = container.controllers.tracking_controller()
        summaries = await tracking_controller.list_emails(sort)

        if len(summaries) == 0:
            print("No tracked emails found in database.")
            return

        logger.info(f"\nFound {len(summaries)} tracked emails:")
        logger.info("-" * 80)
        for i, summary in enumerate(summaries, 1):
            email = summary.email
            logger.info(
                f"{i:3d}. {email.id} {email.recipient[:30]:30} opens: {summary.open_count:3d} "
                f"last: {summary.last_opened_at or '-'}"
            )
        logger.info("-" * 80)


async def print_stats() -> None:
    async with fastapi_sqlalchemy_context():
        stats = await container.controllers.tracking_controller().get_stats()

        logger.info(f"Total emails:   {stats.total_emails}")
        logger.info(f"Total opens:    {stats.total_opens}")
        logger.info(f"Emails opened:  {stats.emails_opened}")
        logger.info(f"Open rate:      {stats.open_rate}%")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Mail Tracker management")
    parser.add_argument(
        "--mode",
        choices=["create-tables", "drop-tables", "list", "stats"],
        default="create-tables",
        help="Operation to run",
    )
    parser.add_argument(
        "--sort", choices=[sort.value for sort in EmailSort], default=EmailSort.RECENT.value, help="Order for list"
    )

    args = parser.parse_args()

    try:
        if args.mode == "create-tables":
            asyncio.run(create_tables())
        elif args.mode == "drop-tables":
            asyncio.run(drop_tables())
        elif args.mode == "list":
            asyncio.run(list_emails(EmailSort(args.sort)))
        elif args.mode == "stats":
            asyncio.run(print_stats())

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        logger.exception("Command failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
