"""Admin commands - create tables and register server users.

Usage:
    python -m feedserver.manage create-tables
    python -m feedserver.manage add-user <base58 user id> [--notes TEXT] [--hide-from-homepage]
"""

import argparse
import asyncio
import logging

from feedserver.config import get_settings
from feedserver.core.identity import UserID
from feedserver.infrastructure.database import DatabaseSessionManager
from feedserver.infrastructure.observability import setup_logging
from feedserver.infrastructure.sql_backend import SqlBackendFactory

logger = logging.getLogger(__name__)


async def _create_tables(manager: DatabaseSessionManager) -> None:
    await manager.create_tables()
    logger.info("Tables created")


async def _add_user(
    manager: DatabaseSessionManager, user: UserID, notes: str, on_homepage: bool,
) -> None:
    factory = SqlBackendFactory(manager)
    async with factory.open() as backend:
        await backend.add_server_user(user, notes=notes, on_homepage=on_homepage)
    logger.info("Server user registered", extra={"user_id": user.to_base58()})


async def _run(args: argparse.Namespace) -> None:
    settings = get_settings()
    manager = DatabaseSessionManager(settings.database_url)
    try:
        if args.command == "create-tables":
            await _create_tables(manager)
        elif args.command == "add-user":
            await _add_user(
                manager, UserID.from_base58(args.user_id),
                args.notes, not args.hide_from_homepage,
            )
    finally:
        await manager.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feedserver.manage")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("create-tables", help="Create missing database tables")
    add_user = sub.add_parser("add-user", help="Allow a user to post to this server")
    add_user.add_argument("user_id")
    add_user.add_argument("--notes", default="")
    add_user.add_argument("--hide-from-homepage", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    setup_logging(settings.log_level, "text")
    asyncio.run(_run(build_parser().parse_args(argv)))


if __name__ == "__main__":
    main()
