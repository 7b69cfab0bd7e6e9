"""Internal alerts fed back into the notification queue.

Publish failures are not sent inline: they are queued as ``internal``
notifications and delivered by the next dispatch pass to the operators'
internal webhook.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from approvalgrid.delivery.config.provider import SCOPE_INTERNAL
from approvalgrid.delivery.db.models import ContentItem, NotificationRecord

PUBLISH_FAILED_EVENT = "publish.failed"


def queue_publish_failures(
    db: AsyncSession, content: ContentItem, failures: list[dict]
) -> list[NotificationRecord]:
    """Add one pending internal notification per failed channel. Does not commit."""
    agency_id = content.client.agency_id if content.client else None
    records = []
    for failure in failures:
        record = NotificationRecord(
            event=PUBLISH_FAILED_EVENT,
            channel=SCOPE_INTERNAL,
            status="pending",
            content_id=content.id,
            client_id=content.client_id,
            agency_id=agency_id,
            payload={
                "source": "social-publisher",
                "priority": "critical",
                "content_type": content.type,
                "platform": failure.get("platform"),
                "account": failure.get("account"),
                "kind": failure.get("kind"),
                "message": failure.get("message"),
            },
        )
        db.add(record)
        records.append(record)
    return records
