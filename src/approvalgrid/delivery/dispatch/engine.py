"""Notification dispatch engine.

One call to ``dispatch_pending`` is one bounded pass over the queue:

1. refresh the webhook endpoint configuration,
2. pick at most ``batch_size`` pending records created inside the trailing
   dedup window, oldest first (older pending rows are left alone),
3. enrich, send (to the agency's own webhook when it has one) and write
   back a terminal status plus a ``webhook_events`` row for each record.

A record's failure never aborts the pass; it ends up as a ``failed`` result.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from approvalgrid.delivery.config.provider import (
    SCOPE_NOTIFICATIONS,
    EndpointProvider,
    SystemSettingsEndpointProvider,
    scope_for_channel,
)
from approvalgrid.delivery.config.settings import settings
from approvalgrid.delivery.db.models import NotificationRecord, utc_now
from approvalgrid.delivery.db.store import (
    add_webhook_event,
    get_notification,
    list_pending_notification_ids,
    load_parties,
    mark_failed,
    mark_sent,
    recipients,
)
from approvalgrid.delivery.dispatch.models import (
    DispatchItemResult,
    DispatchItemStatus,
    DispatchReport,
    NotificationStatus,
)
from approvalgrid.delivery.transport.client import WebhookTransport

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def build_webhook_payload(
    record: NotificationRecord, recipients: dict[str, dict[str, Any]]
) -> dict[str, Any]:
    return {
        "notification_id": record.id,
        "event": record.event,
        "channel": record.channel,
        "content_id": record.content_id,
        "client_id": record.client_id,
        "agency_id": record.agency_id,
        "user_id": record.user_id,
        "payload": record.payload or {},
        "created_at": _iso(record.created_at),
        "agency": recipients.get("agency", {}),
        "client": recipients.get("client", {}),
    }


class DispatchEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transport: WebhookTransport | None = None,
        endpoints: EndpointProvider | None = None,
        batch_size: int | None = None,
        window: timedelta | None = None,
        concurrency: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._transport = transport or WebhookTransport()
        self._endpoints = endpoints or SystemSettingsEndpointProvider(session_factory)
        self._batch_size = batch_size or settings.DISPATCH_BATCH_SIZE
        self._window = window or timedelta(minutes=settings.DISPATCH_WINDOW_MINUTES)
        self._concurrency = max(1, concurrency or settings.DISPATCH_CONCURRENCY)
        self._clock = clock

    async def dispatch_pending(self) -> DispatchReport:
        await self._endpoints.refresh()

        since = self._clock() - self._window
        async with self._session_factory() as db:
            ids = await list_pending_notification_ids(db, since, self._batch_size)

        if not ids:
            logger.debug("No pending notifications since %s", since.isoformat())
            return DispatchReport()

        logger.info(
            "Dispatching %d notification(s) (concurrency=%d)",
            len(ids),
            self._concurrency,
        )

        if self._concurrency == 1:
            outcomes = [await self._process(nid) for nid in ids]
        else:
            sem = asyncio.Semaphore(self._concurrency)

            async def _bounded(nid: str) -> DispatchItemResult | None:
                async with sem:
                    return await self._process(nid)

            # Tasks are created (and acquire the semaphore) in creation order.
            outcomes = await asyncio.gather(*(_bounded(nid) for nid in ids))

        report = DispatchReport(results=[o for o in outcomes if o is not None])
        logger.info(
            "Dispatch pass done: processed=%d sent=%d failed=%d",
            report.processed,
            report.count(DispatchItemStatus.sent),
            report.count(DispatchItemStatus.failed),
        )
        return report

    async def _process(self, notification_id: str) -> DispatchItemResult | None:
        async with self._session_factory() as db:
            record = await get_notification(db, notification_id)
            if record is None or record.status != NotificationStatus.pending.value:
                # Picked up by an overlapping run.
                return None

            try:
                return await self._deliver(db, record)
            except Exception as exc:
                logger.exception("Error processing notification %s", notification_id)
                message = f"Notification processing failed: {type(exc).__name__}"
                await db.rollback()
                await self._fail_after_error(db, notification_id, message)
                return DispatchItemResult(
                    id=notification_id,
                    status=DispatchItemStatus.failed,
                    error=message,
                )

    async def _deliver(
        self, db: AsyncSession, record: NotificationRecord
    ) -> DispatchItemResult:
        agency, client = await load_parties(db, record)
        agency_url = agency.webhook_url if agency else None
        scope = scope_for_channel(record.channel)
        endpoint = self._endpoints.endpoint_for(scope, agency_url)
        if endpoint is None:
            logger.warning(
                "No webhook configured for channel=%s, leaving notification %s pending",
                record.channel,
                record.id,
            )
            return DispatchItemResult(
                id=record.id,
                status=DispatchItemStatus.skipped,
                error="endpoint_not_configured",
            )

        body = build_webhook_payload(record, recipients(agency, client))
        own = scope == SCOPE_NOTIFICATIONS and bool((agency_url or "").strip())
        target = "agency" if own else "global"

        logger.debug(
            "Sending notification %s event=%s target=%s", record.id, record.event, target
        )
        outcome = await self._transport.send(endpoint, body)
        add_webhook_event(
            db,
            record,
            target=target,
            delivered=outcome.ok,
            method=outcome.method,
            http_status=outcome.http_status,
            error=outcome.error,
        )

        if outcome.ok:
            mark_sent(record)
            await db.commit()
            return DispatchItemResult(id=record.id, status=DispatchItemStatus.sent)

        message = outcome.error or "Webhook delivery failed"
        mark_failed(record, message)
        await db.commit()
        logger.warning("Notification %s failed: %s", record.id, message)
        return DispatchItemResult(
            id=record.id, status=DispatchItemStatus.failed, error=message
        )

    async def _fail_after_error(
        self, db: AsyncSession, notification_id: str, message: str
    ) -> None:
        try:
            record = await get_notification(db, notification_id)
            if record is not None and record.status == NotificationStatus.pending.value:
                mark_failed(record, message)
                await db.commit()
        except Exception:
            logger.exception(
                "Could not record failure for notification %s", notification_id
            )
