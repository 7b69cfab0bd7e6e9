from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from approvalgrid.delivery.config.settings import settings
from approvalgrid.delivery.db.models import (
    ContentItem,
    LinkedAccount,
    PublishLog,
    utc_now,
)
from approvalgrid.delivery.db.store import (
    active_accounts,
    get_content,
    has_pending_adjustments,
)
from approvalgrid.delivery.dispatch.alerts import queue_publish_failures
from approvalgrid.delivery.errors import (
    ContentNotFound,
    PendingAdjustments,
    PublishInProgress,
)
from approvalgrid.delivery.orchestrator.models import (
    ChannelOutcome,
    ChannelState,
    PublishReport,
)
from approvalgrid.delivery.publishers.base import (
    AdapterError,
    AdapterErrorKind,
    Container,
    ContainerStatus,
    MediaRef,
    PlatformAdapter,
    PublishAccount,
    PublishContent,
)
from approvalgrid.delivery.publishers.registry import get_adapter

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Timeout"

# content ids with a publish run in flight in this process
_IN_FLIGHT: set[str] = set()


def resolve_targets(
    channels: Iterable[str] | None, accounts: list[LinkedAccount]
) -> list[LinkedAccount]:
    """Active accounts intersected with the item's target channels (all if none)."""
    wanted = {str(c).lower() for c in channels or []}
    if not wanted:
        return list(accounts)
    return [a for a in accounts if a.platform.lower() in wanted]


def _content_snapshot(content: ContentItem) -> PublishContent:
    return PublishContent(
        id=content.id,
        content_type=(content.type or "feed").lower(),
        caption=content.caption or "",
        media=tuple(
            MediaRef(kind=m.kind, location=m.src_url, thumbnail_location=m.thumb_url)
            for m in content.media
        ),
    )


def _account_snapshot(account: LinkedAccount) -> PublishAccount:
    return PublishAccount(
        id=account.id,
        platform=account.platform.lower(),
        account_name=account.account_name,
        access_token=account.access_token,
        page_id=account.page_id,
        instagram_business_account_id=account.instagram_business_account_id,
    )


class PublishOrchestrator:
    """Publishes one content item to every resolved linked account.

    Accounts are independent: one failing never stops the others, and the
    item's ``published_at`` is only set when every resolved account succeeded.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        resolve_adapter: Callable[[str], PlatformAdapter] = get_adapter,
        poll_attempts: int | None = None,
        poll_interval: float | None = None,
        concurrency: int | None = None,
        run_timeout: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._resolve_adapter = resolve_adapter
        self._poll_attempts = poll_attempts or settings.PUBLISH_POLL_ATTEMPTS
        self._poll_interval = (
            settings.PUBLISH_POLL_INTERVAL_SECONDS
            if poll_interval is None
            else poll_interval
        )
        self._concurrency = max(1, concurrency or settings.PUBLISH_CONCURRENCY)
        self._run_timeout = run_timeout or settings.PUBLISH_RUN_TIMEOUT_SECONDS
        self._sleep = sleep
        self._clock = clock

    async def publish(self, content_id: str) -> PublishReport:
        if content_id in _IN_FLIGHT:
            raise PublishInProgress(content_id)
        _IN_FLIGHT.add(content_id)
        try:
            return await self._publish(content_id)
        finally:
            _IN_FLIGHT.discard(content_id)

    async def _publish(self, content_id: str) -> PublishReport:
        async with self._session_factory() as db:
            content = await get_content(db, content_id)
            if content is None:
                raise ContentNotFound(content_id)

            targets = resolve_targets(
                content.channels, await active_accounts(db, content.client_id)
            )

            if await has_pending_adjustments(db, content_id):
                logger.info("Content %s has pending adjustments", content_id)
                raise PendingAdjustments(content_id)

            snapshot = _content_snapshot(content)
            accounts = [_account_snapshot(a) for a in targets]

        if not accounts:
            logger.info("Content %s: no active account to publish to", content_id)
            return PublishReport(content_id=content_id)

        logger.info(
            "Publishing content %s (type=%s) to %s",
            content_id,
            snapshot.content_type,
            ", ".join(f"{a.platform}:{a.account_name}" for a in accounts),
        )

        outcomes = await self._run_accounts(snapshot, accounts)
        report = PublishReport.from_outcomes(content_id, outcomes)
        await self._persist(content_id, report, outcomes)

        logger.info(
            "Content %s published: %d succeeded, %d failed",
            content_id,
            len(report.succeeded),
            len(report.failed),
        )
        return report

    async def _run_accounts(
        self, content: PublishContent, accounts: list[PublishAccount]
    ) -> list[ChannelOutcome]:
        outcomes = [
            ChannelOutcome(
                account_id=a.id, platform=a.platform, account=a.account_name
            )
            for a in accounts
        ]
        sem = asyncio.Semaphore(self._concurrency)

        async def _run(account: PublishAccount, outcome: ChannelOutcome) -> None:
            async with sem:
                await self._publish_account(content, account, outcome)

        tasks = [
            asyncio.create_task(_run(a, o)) for a, o in zip(accounts, outcomes)
        ]
        try:
            _, pending = await asyncio.wait(tasks, timeout=self._run_timeout)
        finally:
            # Stop issuing further work. Remote containers already created stay.
            for task in tasks:
                if not task.done():
                    task.cancel()

        if pending:
            logger.warning(
                "Publish run for content %s hit the %.0fs deadline, %d account(s) cancelled",
                content.id,
                self._run_timeout,
                len(pending),
            )
            await asyncio.gather(*pending, return_exceptions=True)

        for task, outcome in zip(tasks, outcomes):
            if task in pending:
                outcome.fail(AdapterErrorKind.TIMEOUT, TIMEOUT_MESSAGE)
            elif task.exception() is not None:
                outcome.fail(AdapterErrorKind.REMOTE_REJECTED, "Unexpected error")
        return outcomes

    async def _publish_account(
        self,
        content: PublishContent,
        account: PublishAccount,
        outcome: ChannelOutcome,
    ) -> None:
        try:
            adapter = self._resolve_adapter(account.platform)
        except ValueError as exc:
            outcome.fail(AdapterErrorKind.UNSUPPORTED, str(exc))
            return

        try:
            container = await adapter.create_container(content, account)
            outcome.state = ChannelState.CONTAINER_CREATED
            logger.debug(
                "Container %s created on %s:%s",
                container.id,
                account.platform,
                account.account_name,
            )

            outcome.state = ChannelState.PROCESSING
            status = await self._wait_until_processed(
                adapter, container, account, outcome
            )
            if status == ContainerStatus.ERROR:
                outcome.state = ChannelState.ERROR
                outcome.error_kind = AdapterErrorKind.REMOTE_REJECTED
                outcome.message = "Media processing failed"
                return
            if status != ContainerStatus.FINISHED:
                raise AdapterError(AdapterErrorKind.TIMEOUT, TIMEOUT_MESSAGE)
            outcome.state = ChannelState.FINISHED

            outcome.remote_id = await adapter.publish(container, account)
            outcome.state = ChannelState.PUBLISHED
            logger.info(
                "Published content %s on %s:%s as %s",
                content.id,
                account.platform,
                account.account_name,
                outcome.remote_id,
            )

        except AdapterError as exc:
            logger.warning(
                "Publishing content %s on %s:%s failed (%s): %s",
                content.id,
                account.platform,
                account.account_name,
                exc.kind.value,
                exc.message,
            )
            outcome.fail(exc.kind, exc.message)
        except Exception as exc:
            logger.exception(
                "Unexpected error publishing content %s on %s:%s",
                content.id,
                account.platform,
                account.account_name,
            )
            outcome.fail(
                AdapterErrorKind.REMOTE_REJECTED,
                f"Unexpected error: {type(exc).__name__}",
            )

    async def _wait_until_processed(
        self,
        adapter: PlatformAdapter,
        container: Container,
        account: PublishAccount,
        outcome: ChannelOutcome,
    ) -> ContainerStatus:
        status = ContainerStatus.IN_PROGRESS
        for attempt in range(1, self._poll_attempts + 1):
            outcome.poll_attempts = attempt
            status = await adapter.poll_status(container, account)
            if status in (ContainerStatus.FINISHED, ContainerStatus.ERROR):
                return status
            if attempt < self._poll_attempts:
                await self._sleep(self._poll_interval)
        return status

    async def _persist(
        self,
        content_id: str,
        report: PublishReport,
        outcomes: list[ChannelOutcome],
    ) -> None:
        async with self._session_factory() as db:
            content = await get_content(db, content_id)
            if content is None:
                logger.warning("Content %s disappeared during publish", content_id)
                return

            if report.fully_published:
                content.published_at = self._clock()
                content.publish_error = None
            else:
                # A previous full success stays recorded.
                content.publish_error = report.publish_error()

            for o in outcomes:
                db.add(
                    PublishLog(
                        content_id=content_id,
                        account_id=o.account_id,
                        platform=o.platform,
                        account_name=o.account,
                        status="published" if o.succeeded else "failed",
                        remote_id=o.remote_id,
                        error_kind=o.error_kind.value if o.error_kind else None,
                        error=o.message,
                    )
                )

            if report.failed:
                queue_publish_failures(
                    db, content, [f.model_dump(mode="json") for f in report.failed]
                )

            await db.commit()
