"""Database bootstrap for development and first deploys.

``delivery-cli db init`` creates the Postgres database when it is missing and
applies every Alembic revision. Regular deploys only need
``alembic upgrade head``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import make_url, text
from sqlalchemy.ext.asyncio import create_async_engine

from approvalgrid.delivery.config.settings import settings

logger = logging.getLogger(__name__)

# src/approvalgrid/delivery/db/init_db.py -> repository root
_ALEMBIC_INI = Path(__file__).resolve().parents[4] / "alembic.ini"


def alembic_config(ini_path: Path = _ALEMBIC_INI) -> Config:
    if not ini_path.exists():
        raise FileNotFoundError(f"alembic.ini not found at {ini_path}")
    return Config(str(ini_path))


async def ensure_database(db_url: str) -> bool:
    """Create the target Postgres database if absent. Returns True when created.

    Other backends create their database on first connect, so nothing is done.
    """
    url = make_url(db_url)
    if not url.drivername.startswith("postgresql"):
        logger.info("No database to create for driver %s", url.drivername)
        return False

    # CREATE DATABASE cannot run in a transaction: use the maintenance DB.
    engine = create_async_engine(
        url.set(database="postgres"), isolation_level="AUTOCOMMIT"
    )
    try:
        async with engine.connect() as conn:
            found = await conn.scalar(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": url.database},
            )
            if found:
                logger.info("Database %s already exists", url.database)
                return False
            await conn.execute(text(f'CREATE DATABASE "{url.database}"'))
    finally:
        await engine.dispose()

    logger.info("Created database %s", url.database)
    return True


def upgrade(revision: str = "head") -> None:
    logger.info("Applying migrations up to %s", revision)
    command.upgrade(alembic_config(), revision)


async def bootstrap(db_url: str | None = None) -> None:
    await ensure_database(db_url or settings.DATABASE_URL)
    # Alembic's API is sync and opens its own engine from settings.
    upgrade()
