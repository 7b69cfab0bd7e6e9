"""Run dispatch and publish passes from the command line (cron, ops)."""

from __future__ import annotations

import asyncio
import json

import typer

from approvalgrid.delivery.db.session import get_session_factory
from approvalgrid.delivery.dispatch.engine import DispatchEngine
from approvalgrid.delivery.errors import PreconditionFailed
from approvalgrid.delivery.orchestrator.orchestrator import PublishOrchestrator


def dispatch() -> None:
    """Send pending notifications created inside the dedup window."""
    report = asyncio.run(DispatchEngine(get_session_factory()).dispatch_pending())
    typer.echo(json.dumps(report.summary(), indent=2))


def publish(
    content_id: str = typer.Argument(..., help="Content item to publish."),
) -> None:
    """Publish one content item to its client's linked social accounts."""
    orchestrator = PublishOrchestrator(get_session_factory())
    try:
        report = asyncio.run(orchestrator.publish(content_id))
    except PreconditionFailed as e:
        typer.echo(f"Error: {e.code}: {e.message}", err=True)
        raise typer.Exit(2)

    typer.echo(report.model_dump_json(indent=2))
    if report.failed:
        raise typer.Exit(1)
