"""Read/filter/update helpers over the delivery tables.

Every function takes the caller's ``AsyncSession``; none of them commit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from approvalgrid.delivery.db.models import (
    AdjustmentRequest,
    Agency,
    Client,
    ContentItem,
    LinkedAccount,
    NotificationRecord,
    SystemSetting,
    WebhookEvent,
    utc_now,
)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


async def list_pending_notification_ids(
    db: AsyncSession, since: datetime, limit: int
) -> list[str]:
    """Ids of pending records created after ``since``, oldest first."""
    res = await db.execute(
        select(NotificationRecord.id)
        .where(
            NotificationRecord.status == "pending",
            NotificationRecord.created_at > since,
        )
        .order_by(NotificationRecord.created_at.asc(), NotificationRecord.id.asc())
        .limit(limit)
    )
    return list(res.scalars().all())


async def get_notification(
    db: AsyncSession, notification_id: str
) -> NotificationRecord | None:
    res = await db.execute(
        select(NotificationRecord).where(NotificationRecord.id == notification_id)
    )
    return res.scalar_one_or_none()


def _contact(entity: Agency | Client | None) -> dict[str, Any]:
    return {
        "name": entity.name if entity else None,
        "email": entity.email if entity else None,
        "whatsapp": entity.whatsapp if entity else None,
    }


async def load_parties(
    db: AsyncSession, record: NotificationRecord
) -> tuple[Agency | None, Client | None]:
    """Agency and client a record refers to. The agency falls back to the client's."""
    client = await db.get(Client, record.client_id) if record.client_id else None

    agency_id = record.agency_id or (client.agency_id if client else None)
    agency = await db.get(Agency, agency_id) if agency_id else None
    return agency, client


def recipients(agency: Agency | None, client: Client | None) -> dict[str, dict[str, Any]]:
    """Display name and contact info, as sent in webhook payloads."""
    return {"agency": _contact(agency), "client": _contact(client)}


def mark_sent(record: NotificationRecord) -> None:
    record.status = "sent"
    record.sent_at = utc_now()
    record.error_message = None


def mark_failed(record: NotificationRecord, message: str) -> None:
    record.status = "failed"
    record.error_message = message
    record.retry_count = (record.retry_count or 0) + 1


def add_webhook_event(
    db: AsyncSession,
    record: NotificationRecord,
    *,
    target: str,
    delivered: bool,
    method: str | None,
    http_status: int | None,
    error: str | None,
) -> WebhookEvent:
    event = WebhookEvent(
        notification_id=record.id,
        event=record.event,
        target=target,
        status="delivered" if delivered else "failed",
        method=method,
        http_status=http_status,
        error=error,
    )
    db.add(event)
    return event


# ---------------------------------------------------------------------------
# Content & accounts
# ---------------------------------------------------------------------------


async def get_content(db: AsyncSession, content_id: str) -> ContentItem | None:
    res = await db.execute(
        select(ContentItem)
        .options(selectinload(ContentItem.media), selectinload(ContentItem.client))
        .where(ContentItem.id == content_id)
    )
    return res.scalar_one_or_none()


async def has_pending_adjustments(db: AsyncSession, content_id: str) -> bool:
    res = await db.execute(
        select(AdjustmentRequest.id)
        .where(
            AdjustmentRequest.content_id == content_id,
            AdjustmentRequest.resolved_at.is_(None),
        )
        .limit(1)
    )
    return res.scalar_one_or_none() is not None


async def active_accounts(db: AsyncSession, client_id: str) -> list[LinkedAccount]:
    res = await db.execute(
        select(LinkedAccount)
        .where(
            LinkedAccount.client_id == client_id,
            LinkedAccount.is_active.is_(True),
        )
        .order_by(LinkedAccount.created_at.asc(), LinkedAccount.id.asc())
    )
    return list(res.scalars().all())


# ---------------------------------------------------------------------------
# System settings
# ---------------------------------------------------------------------------


async def get_settings_map(db: AsyncSession, keys: list[str]) -> dict[str, str]:
    res = await db.execute(select(SystemSetting).where(SystemSetting.key.in_(keys)))
    return {row.key: row.value for row in res.scalars().all()}


async def list_settings(db: AsyncSession) -> list[SystemSetting]:
    res = await db.execute(select(SystemSetting).order_by(SystemSetting.key))
    return list(res.scalars().all())


async def upsert_setting(db: AsyncSession, key: str, value: str) -> SystemSetting:
    obj = await db.get(SystemSetting, key)
    if obj is None:
        obj = SystemSetting(key=key, value=value)
        db.add(obj)
    else:
        obj.value = value
        obj.updated_at = utc_now()
    return obj


# ---------------------------------------------------------------------------
# Agencies
# ---------------------------------------------------------------------------


async def set_agency_webhook(
    db: AsyncSession, agency_id: str, url: str | None
) -> Agency | None:
    agency = await db.get(Agency, agency_id)
    if agency is not None:
        agency.webhook_url = url
    return agency
