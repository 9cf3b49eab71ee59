#!/usr/bin/env python3
"""CLI for Dogmania certification API management tasks.

Usage:
    python -m cli <command>

Commands:
    migrate [target]    Apply database migrations (default: head)
    downgrade [target]  Revert database migrations (default: -1)
    current             Show the current migration revision
    seed-catalog        Create the default certification types
"""

import argparse
import asyncio
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

from core.database import create_engine, create_session_maker, dispose_engine
from core.logger import configure_logging, get_logger

logger = get_logger(__name__)


def _get_alembic_config() -> Config:
    api_dir = Path(__file__).resolve().parent
    cfg = Config(str(api_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(api_dir / "alembic"))
    cfg.attributes["configure_logger"] = False
    return cfg


def cmd_migrate(target: str) -> int:
    """Apply database migrations."""
    logger.info("migrations.starting", target=target)
    command.upgrade(_get_alembic_config(), target)
    logger.info("migrations.complete", target=target)
    return 0


def cmd_downgrade(target: str) -> int:
    logger.info("migrations.downgrading", target=target)
    command.downgrade(_get_alembic_config(), target)
    return 0


def cmd_current() -> int:
    command.current(_get_alembic_config())
    return 0


async def _seed_catalog() -> int:
    from services.catalog_service import seed_default_catalog

    engine = create_engine()
    session_maker = create_session_maker(engine)
    try:
        async with session_maker() as session, session.begin():
            return await seed_default_catalog(session)
    finally:
        await dispose_engine(engine)


def cmd_seed_catalog() -> int:
    """Create the default certification types that do not exist yet."""
    created = asyncio.run(_seed_catalog())
    logger.info("catalog.seeded", created=created)
    return 0


def main() -> int:
    configure_logging()

    parser = argparse.ArgumentParser(
        description="Dogmania certification API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    migrate = subparsers.add_parser("migrate", help="Apply database migrations")
    migrate.add_argument("target", nargs="?", default="head")

    downgrade = subparsers.add_parser("downgrade", help="Revert database migrations")
    downgrade.add_argument("target", nargs="?", default="-1")

    subparsers.add_parser("current", help="Show the current migration revision")
    subparsers.add_parser(
        "seed-catalog",
        help="Create the default certification types",
    )

    args = parser.parse_args()

    match args.command:
        case "migrate":
            return cmd_migrate(args.target)
        case "downgrade":
            return cmd_downgrade(args.target)
        case "current":
            return cmd_current()
        case "seed-catalog":
            return cmd_seed_catalog()
        case _:
            parser.print_help()
            return 1


if __name__ == "__main__":
    sys.exit(main())
