from __future__ import annotations

import asyncio

import typer

from approvalgrid.delivery.db.init_db import bootstrap, upgrade

db_app = typer.Typer(add_completion=False, help="Database bootstrap and migrations")


@db_app.command("init")
def init() -> None:
    """Create the database if missing, then migrate to the latest revision."""
    asyncio.run(bootstrap())
    typer.echo("Database initialized and migrated.")


@db_app.command("upgrade")
def upgrade_(
    revision: str = typer.Argument("head", help="Target Alembic revision."),
) -> None:
    """Apply migrations up to REVISION."""
    upgrade(revision)
    typer.echo(f"Migrated to {revision}.")
