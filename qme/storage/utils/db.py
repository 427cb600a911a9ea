"""Database management utilities for the measure engine."""

import asyncio
import logging
import sys

from qme.config import configure_logging, get_settings

# Import tables to register with Base.metadata
from qme.storage.sqlalchemy import tables  # noqa: F401
from qme.storage.sqlalchemy.base import Base
from qme.storage.sqlalchemy.engine import dispose_engine, get_engine

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables (idempotent)."""
    engine = get_engine()
    logger.info("Ensuring all database tables exist...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await dispose_engine()
    logger.info("Database schema is up to date")


async def drop_tables() -> None:
    """Drop all engine tables."""
    engine = get_engine()
    logger.warning("Dropping all database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await dispose_engine()
    logger.info("Database tables dropped successfully")


async def _reset_database(force: bool = False) -> None:
    """Drop all tables and recreate them."""
    database_url = get_settings().database_url

    db_display = database_url.split("@")[-1] if "@" in database_url else database_url
    print(f"QME Database: {db_display}")
    print()

    if not force:
        print("WARNING: This will DELETE ALL CACHED CLASSIFICATIONS AND RESULTS!")
        print()
        response = input("Type 'yes' to confirm: ")
        if response.lower() != "yes":
            print("Aborted.")
            sys.exit(1)
        print()

    await drop_tables()
    await create_tables()

    logger.info("QME database recreated successfully!")


def db_init():
    """Initialize database (create tables)."""
    configure_logging()
    asyncio.run(create_tables())


def db_reset():
    """Drop and recreate all database tables."""
    configure_logging()
    force = "--force" in sys.argv or "-f" in sys.argv
    asyncio.run(_reset_database(force=force))
