"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17

Delivery pipeline tables: notification queue, content/publish state, linked
social accounts, runtime settings and the publish audit log. The agencies and
clients tables mirror the columns the pipeline reads for enrichment.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ------------------------------------------------------------------
    # agencies / clients
    # ------------------------------------------------------------------
    op.create_table(
        "agencies",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("whatsapp", sa.String(64), nullable=True),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "agency_id",
            sa.String(64),
            sa.ForeignKey("agencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("whatsapp", sa.String(64), nullable=True),
    )
    op.create_index("ix_clients_agency_id", "clients", ["agency_id"])

    # ------------------------------------------------------------------
    # notifications
    # ------------------------------------------------------------------
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("channel", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("content_id", sa.String(64), nullable=True),
        sa.Column(
            "client_id",
            sa.String(64),
            sa.ForeignKey("clients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "agency_id",
            sa.String(64),
            sa.ForeignKey("agencies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_notifications_status_created_at",
        "notifications",
        ["status", "created_at"],
    )

    # ------------------------------------------------------------------
    # contents / content_media / adjustment_requests
    # ------------------------------------------------------------------
    op.create_table(
        "contents",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "client_id",
            sa.String(64),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False, server_default=""),
        sa.Column("type", sa.String(20), nullable=False, server_default="feed"),
        sa.Column("channels", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("caption", sa.Text(), nullable=False, server_default=""),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("publish_error", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_contents_client_id", "contents", ["client_id"])

    op.create_table(
        "content_media",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "content_id",
            sa.String(64),
            sa.ForeignKey("contents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("src_url", sa.Text(), nullable=False),
        sa.Column("thumb_url", sa.Text(), nullable=True),
    )
    op.create_index("ix_content_media_content_id", "content_media", ["content_id"])

    op.create_table(
        "adjustment_requests",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "content_id",
            sa.String(64),
            sa.ForeignKey("contents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_adjustment_requests_content_id", "adjustment_requests", ["content_id"]
    )

    # ------------------------------------------------------------------
    # social_accounts
    # ------------------------------------------------------------------
    op.create_table(
        "social_accounts",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "client_id",
            sa.String(64),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("platform", sa.String(30), nullable=False),
        sa.Column("account_name", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("page_id", sa.String(64), nullable=True),
        sa.Column("instagram_business_account_id", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_social_accounts_client_id", "social_accounts", ["client_id"])

    # ------------------------------------------------------------------
    # system_settings / publish_log
    # ------------------------------------------------------------------
    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(100), primary_key=True, nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "publish_log",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("content_id", sa.String(64), nullable=False),
        sa.Column("account_id", sa.String(64), nullable=False),
        sa.Column("platform", sa.String(30), nullable=False),
        sa.Column("account_name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("remote_id", sa.String(128), nullable=True),
        sa.Column("error_kind", sa.String(30), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_publish_log_content_id", "publish_log", ["content_id"])


def downgrade() -> None:
    op.drop_index("ix_publish_log_content_id", table_name="publish_log")
    op.drop_table("publish_log")
    op.drop_table("system_settings")
    op.drop_index("ix_social_accounts_client_id", table_name="social_accounts")
    op.drop_table("social_accounts")
    op.drop_index(
        "ix_adjustment_requests_content_id", table_name="adjustment_requests"
    )
    op.drop_table("adjustment_requests")
    op.drop_index("ix_content_media_content_id", table_name="content_media")
    op.drop_table("content_media")
    op.drop_index("ix_contents_client_id", table_name="contents")
    op.drop_table("contents")
    op.drop_index("ix_notifications_status_created_at", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_clients_agency_id", table_name="clients")
    op.drop_table("clients")
    op.drop_table("agencies")
