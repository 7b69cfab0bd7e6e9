from __future__ import annotations
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now():
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class Base(DeclarativeBase):
    pass


class Agency(Base):
    __tablename__ = "agencies"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    whatsapp: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Agency-owned receiver for its notifications. Treated as a secret.
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    clients: Mapped[list["Client"]] = relationship(back_populates="agency")


class Client(Base):
    __tablename__ = "clients"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    agency_id: Mapped[str] = mapped_column(
        ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    whatsapp: Mapped[str | None] = mapped_column(String(64), nullable=True)

    agency: Mapped["Agency"] = relationship(back_populates="clients")


class NotificationRecord(Base):
    """Queued outbound notification. Mutated only by the dispatch engine.
    Never hard-deleted: the table doubles as the delivery audit trail.
    """

    __tablename__ = "notifications"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    event: Mapped[str] = mapped_column(String(100), nullable=False)
    # email | webhook | whatsapp | internal  (informational; transport is HTTP)
    channel: Mapped[str] = mapped_column(String(30), nullable=False)

    # pending | sent | failed
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)

    # Related entities, resolved at send time for enrichment
    content_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_id: Mapped[str | None] = mapped_column(
        ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    agency_id: Mapped[str | None] = mapped_column(
        ForeignKey("agencies.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_notifications_status_created_at", "status", "created_at"),
    )


class ContentItem(Base):
    __tablename__ = "contents"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    # image | video | reels | carousel | story | feed
    type: Mapped[str] = mapped_column(String(20), default="feed", nullable=False)

    # Target platform ids; empty means "every active linked account"
    channels: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    caption: Mapped[str] = mapped_column(Text, default="", nullable=False)

    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # [{platform, account, message}, ...] of the latest partial run
    publish_error: Mapped[list | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    client: Mapped["Client"] = relationship()
    media: Mapped[list["ContentMedia"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        order_by="ContentMedia.position",
    )


class ContentMedia(Base):
    __tablename__ = "content_media"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    content_id: Mapped[str] = mapped_column(
        ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)  # image | video
    src_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumb_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    content: Mapped["ContentItem"] = relationship(back_populates="media")


class AdjustmentRequest(Base):
    """Client-side change request on a content item. Unresolved rows block publishing."""

    __tablename__ = "adjustment_requests"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    content_id: Mapped[str] = mapped_column(
        ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body: Mapped[str] = mapped_column(Text, default="", nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class LinkedAccount(Base):
    __tablename__ = "social_accounts"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    platform: Mapped[str] = mapped_column(String(30), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Credential. Never log, never return from the API.
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    page_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    instagram_business_account_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class SystemSetting(Base):
    """Operator-editable runtime configuration (webhook endpoints)."""

    __tablename__ = "system_settings"
    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class PublishLog(Base):
    """One row per (content item, account) per publish run."""

    __tablename__ = "publish_log"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    content_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)

    platform: Mapped[str] = mapped_column(String(30), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # published | failed
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    remote_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    error_kind: Mapped[str | None] = mapped_column(String(30), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class WebhookEvent(Base):
    """One row per webhook delivery of a notification (audit trail)."""

    __tablename__ = "webhook_events"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    notification_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    event: Mapped[str] = mapped_column(String(100), nullable=False)
    # agency | global
    target: Mapped[str] = mapped_column(String(20), nullable=False)

    # delivered | failed
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    method: Mapped[str | None] = mapped_column(String(10), nullable=True)
    http_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
