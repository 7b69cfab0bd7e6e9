"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema, so the dispatch engine and the publish orchestrator run against real
SQL without a Postgres instance.
"""

from __future__ import annotations

import os

# Set before importing app modules: db/session.py builds its engine at import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["API_TOKEN"] = ""
for _key in ("NOTIFY_WEBHOOK_URL", "NOTIFY_WEBHOOK_TOKEN", "INTERNAL_WEBHOOK_URL"):
    os.environ.pop(_key, None)

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool, StaticPool  # noqa: E402

from approvalgrid.delivery.db.models import (  # noqa: E402
    AdjustmentRequest,
    Agency,
    Base,
    Client,
    ContentItem,
    ContentMedia,
    LinkedAccount,
    NotificationRecord,
    utc_now,
)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def file_session_factory(tmp_path):
    """SQLite file with a fresh connection per session.

    Unlike the shared in-memory connection, concurrent sessions here get their
    own transactions, as they would against Postgres.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'delivery.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


class Seeder:
    """Writes rows in short-lived sessions so they never overlap the code under test."""

    def __init__(self, session_factory) -> None:
        self._factory = session_factory

    async def add(self, *objs):
        async with self._factory() as db:
            db.add_all(objs)
            await db.commit()
        return objs[0] if len(objs) == 1 else objs

    async def get(self, model, pk):
        async with self._factory() as db:
            return await db.get(model, pk)

    async def all(self, model, *where):
        async with self._factory() as db:
            res = await db.execute(select(model).where(*where))
            return list(res.scalars().all())

    async def agency_and_client(
        self, webhook_url: str | None = None
    ) -> tuple[Agency, Client]:
        agency = Agency(
            id="agency-1",
            name="Acme Agency",
            email="ops@acme.test",
            whatsapp="+390000000001",
            webhook_url=webhook_url,
        )
        client = Client(
            id="client-1",
            agency_id="agency-1",
            name="Bakery Rossi",
            email="owner@rossi.test",
            whatsapp="+390000000002",
        )
        await self.add(agency, client)
        return agency, client

    async def agency_webhook(self, url: str | None, agency_id: str = "agency-1"):
        async with self._factory() as db:
            agency = await db.get(Agency, agency_id)
            agency.webhook_url = url
            await db.commit()

    async def notification(
        self,
        id: str,
        *,
        channel: str = "email",
        event: str = "content.approved",
        created_at: datetime | None = None,
        status: str = "pending",
        client_id: str | None = "client-1",
        agency_id: str | None = None,
        payload: dict | None = None,
    ) -> NotificationRecord:
        return await self.add(
            NotificationRecord(
                id=id,
                event=event,
                channel=channel,
                status=status,
                client_id=client_id,
                agency_id=agency_id,
                payload=payload or {},
                created_at=created_at or utc_now(),
            )
        )

    async def content(
        self,
        id: str = "content-1",
        *,
        type: str = "image",
        channels: list | None = None,
        caption: str = "Fresh bread every morning",
        media: list[tuple[str, str]] | None = None,
        published_at: datetime | None = None,
    ) -> ContentItem:
        item = ContentItem(
            id=id,
            client_id="client-1",
            title="Post",
            type=type,
            channels=channels or [],
            caption=caption,
            published_at=published_at,
        )
        rows = [
            ContentMedia(
                content_id=id, position=i, kind=kind, src_url=url, thumb_url=None
            )
            for i, (kind, url) in enumerate(
                [("image", "https://cdn.test/bread.jpg")] if media is None else media
            )
        ]
        await self.add(item, *rows)
        return item

    async def account(
        self,
        id: str,
        platform: str,
        name: str,
        *,
        is_active: bool = True,
        created_at: datetime | None = None,
    ) -> LinkedAccount:
        return await self.add(
            LinkedAccount(
                id=id,
                client_id="client-1",
                platform=platform,
                account_name=name,
                access_token=f"token-{id}",
                page_id=f"page-{id}" if platform == "facebook" else None,
                instagram_business_account_id=(
                    f"ig-{id}" if platform == "instagram" else None
                ),
                is_active=is_active,
                created_at=created_at or utc_now(),
            )
        )

    async def adjustment(self, content_id: str, resolved: bool = False):
        return await self.add(
            AdjustmentRequest(
                content_id=content_id,
                body="Change the caption",
                resolved_at=utc_now() if resolved else None,
            )
        )


@pytest.fixture
async def seed(session_factory):
    seeder = Seeder(session_factory)
    await seeder.agency_and_client()
    return seeder


@pytest.fixture
async def file_seed(file_session_factory):
    seeder = Seeder(file_session_factory)
    await seeder.agency_and_client()
    return seeder
