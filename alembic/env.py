"""Alembic environment.

Reads DATABASE_URL from the application settings so there is a single
source of truth; no need to keep alembic.ini in sync with .env.
Migrations run over the synchronous default driver (psycopg2), so the
asyncpg driver name is stripped from the URL.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import NullPool, create_engine, make_url

# Import Base so Alembic can diff against the full metadata
from approvalgrid.delivery.db.models import Base
from approvalgrid.delivery.config.settings import settings

# ---------------------------------------------------------------------------
# Alembic Config object (provides access to values in alembic.ini)
# ---------------------------------------------------------------------------
config = context.config

# Wire up Python logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

_url = make_url(settings.DATABASE_URL)
if _url.drivername.startswith("postgresql"):
    _url = _url.set(drivername="postgresql")
elif _url.drivername.startswith("sqlite"):
    _url = _url.set(drivername="sqlite")


# ---------------------------------------------------------------------------
# Offline mode – emit SQL to stdout (no live DB connection)
# ---------------------------------------------------------------------------
def run_migrations_offline() -> None:
    context.configure(
        url=_url.render_as_string(hide_password=False),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


# ---------------------------------------------------------------------------
# Online mode
# ---------------------------------------------------------------------------
def run_migrations_online() -> None:
    engine = create_engine(
        _url.render_as_string(hide_password=False),
        poolclass=NullPool,
    )
    with engine.connect() as conn:
        context.configure(
            connection=conn, target_metadata=target_metadata, compare_type=True
        )
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
