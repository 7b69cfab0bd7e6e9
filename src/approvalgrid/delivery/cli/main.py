from __future__ import annotations

import logging

import typer

from approvalgrid.delivery.cli import run
from approvalgrid.delivery.cli.db import db_app
from approvalgrid.delivery.cli.settings import settings_app
from approvalgrid.delivery.config.settings import settings


def build_app() -> typer.Typer:
    app = typer.Typer(add_completion=True, help="Outbound delivery pipeline CLI")
    app.command("dispatch")(run.dispatch)
    app.command("publish")(run.publish)
    app.add_typer(settings_app, name="settings")
    app.add_typer(db_app, name="db")
    return app


def create_app():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(), format="%(levelname)s: %(message)s"
    )
    build_app()()


if __name__ == "__main__":
    create_app()
