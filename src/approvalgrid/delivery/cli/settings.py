from __future__ import annotations

import asyncio

import typer

from approvalgrid.delivery.config.provider import (
    SECRET_KEYS,
    SETTING_KEYS,
    validate_setting,
)
from approvalgrid.delivery.db.session import get_session_factory
from approvalgrid.delivery.db.store import list_settings, upsert_setting

settings_app = typer.Typer(add_completion=False, help="Manage runtime settings")


async def _show() -> list[tuple[str, str]]:
    async with get_session_factory()() as db:
        rows = {s.key: s.value for s in await list_settings(db)}
    return [(k, rows.get(k, "")) for k in SETTING_KEYS]


async def _set(key: str, value: str) -> None:
    async with get_session_factory()() as db:
        await upsert_setting(db, key, value)
        await db.commit()


@settings_app.command("show")
def show() -> None:
    """Show which runtime webhook settings are set."""
    for key, value in asyncio.run(_show()):
        if not value:
            shown = "✗ missing"
        elif key in SECRET_KEYS:
            shown = "✓ set"
        else:
            shown = value
        typer.echo(f"  {key:<30} {shown}")


@settings_app.command("set")
def set_(
    key: str = typer.Argument(..., help=f"One of: {', '.join(SETTING_KEYS)}"),
    value: str = typer.Argument(..., help="New value."),
) -> None:
    """Create or update a runtime setting."""
    if key not in SETTING_KEYS:
        typer.echo(f"Error: unknown setting {key!r}", err=True)
        raise typer.Exit(1)

    try:
        value = validate_setting(key, value)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    asyncio.run(_set(key, value))
    typer.echo(f"{key} updated.")
