from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import Connection, create_engine, make_url, text

# api/ holds the application modules imported below
sys.path.insert(0, str(Path(__file__).parent.parent))

import models  # noqa: F401  (registers tables on Base.metadata)
from alembic import context
from core.config import get_settings
from core.database import Base

config = context.config

# The CLI has already configured structlog and asks us to leave logging alone.
if config.config_file_name is not None and config.attributes.get(
    "configure_logger", True
):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

MIGRATION_LOCK_KEY = 581203377
LOCK_WAIT_SECONDS = 120
LOCK_POLL_SECONDS = 2

_SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite",
}


def migration_url() -> str:
    """DATABASE_URL with its async driver swapped for a blocking one."""
    url = make_url(get_settings().database_url)
    drivername = _SYNC_DRIVERS.get(url.drivername, url.drivername)
    return url.set(drivername=drivername).render_as_string(hide_password=False)


@contextmanager
def migration_lock(connection: Connection) -> Iterator[None]:
    """Hold a PostgreSQL advisory lock so replicas migrate one at a time.

    A no-op on other dialects.
    """
    if connection.dialect.name != "postgresql":
        yield
        return

    deadline = time.monotonic() + LOCK_WAIT_SECONDS
    while True:
        acquired = connection.execute(
            text("SELECT pg_try_advisory_lock(:key)"), {"key": MIGRATION_LOCK_KEY}
        ).scalar()
        if acquired:
            connection.commit()
            break
        if time.monotonic() >= deadline:
            raise RuntimeError(
                f"Migration lock not acquired within {LOCK_WAIT_SECONDS}s; "
                "another migrator may be stuck"
            )
        logger.info("Waiting for migration lock")
        time.sleep(LOCK_POLL_SECONDS)

    try:
        yield
    finally:
        connection.execute(
            text("SELECT pg_advisory_unlock(:key)"), {"key": MIGRATION_LOCK_KEY}
        )
        logger.info("Released migration lock")


def run_migrations_offline() -> None:
    context.configure(
        url=migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(migration_url())
    try:
        with engine.connect() as connection, migration_lock(connection):
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
