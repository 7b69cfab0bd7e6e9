"""agency webhooks and delivery audit

Revision ID: 0002_agency_webhooks
Revises: 0001_initial
Create Date: 2026-10-18

Per-agency notification webhook URL and the webhook_events table recording
every delivery made by the dispatch engine.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision: str = "0002_agency_webhooks"
down_revision: str | None = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("agencies", sa.Column("webhook_url", sa.Text(), nullable=True))

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("notification_id", sa.String(64), nullable=False),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("target", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("method", sa.String(10), nullable=True),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_webhook_events_notification_id", "webhook_events", ["notification_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_webhook_events_notification_id", table_name="webhook_events")
    op.drop_table("webhook_events")
    op.drop_column("agencies", "webhook_url")
