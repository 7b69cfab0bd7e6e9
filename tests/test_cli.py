"""CLI wiring tests.

Commands run their own event loop, so the database is a SQLite file created
synchronously and reached through a fresh connection per session.
"""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool
from typer.testing import CliRunner

from approvalgrid.delivery.cli import run as cli_run
from approvalgrid.delivery.cli import settings as cli_settings
from approvalgrid.delivery.cli.main import build_app
from approvalgrid.delivery.db.models import (
    AdjustmentRequest,
    Agency,
    Base,
    Client,
    ContentItem,
    ContentMedia,
    LinkedAccount,
    SystemSetting,
)
from approvalgrid.delivery.publishers import registry
from approvalgrid.delivery.publishers.base import AdapterError, AdapterErrorKind

from fakes import FakeAdapter

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    path = tmp_path / "cli.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)

    factory = async_sessionmaker(
        create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool),
        expire_on_commit=False,
    )
    monkeypatch.setattr(cli_settings, "get_session_factory", lambda: factory)
    monkeypatch.setattr(cli_run, "get_session_factory", lambda: factory)
    yield engine
    engine.dispose()


@pytest.fixture
def content(cli_db):
    with Session(cli_db) as db:
        db.add_all(
            [
                Agency(id="agency-1", name="Acme Agency"),
                Client(id="client-1", agency_id="agency-1", name="Bakery Rossi"),
                ContentItem(
                    id="content-1",
                    client_id="client-1",
                    title="Post",
                    type="image",
                    channels=[],
                    caption="Fresh bread every morning",
                ),
                ContentMedia(
                    content_id="content-1",
                    position=0,
                    kind="image",
                    src_url="https://cdn.test/bread.jpg",
                ),
                LinkedAccount(
                    id="fb1",
                    client_id="client-1",
                    platform="facebook",
                    account_name="Rossi Page",
                    access_token="token-fb1",
                    page_id="page-fb1",
                    is_active=True,
                ),
                LinkedAccount(
                    id="ig1",
                    client_id="client-1",
                    platform="instagram",
                    account_name="rossi.bakery",
                    access_token="token-ig1",
                    instagram_business_account_id="ig-ig1",
                    is_active=True,
                ),
            ]
        )
        db.commit()
    return cli_db


@pytest.fixture
def adapters(monkeypatch):
    ig = FakeAdapter(
        "instagram",
        publish_error=AdapterError(AdapterErrorKind.REMOTE_REJECTED, "Media rejected"),
    )
    monkeypatch.setattr(
        registry, "_ADAPTERS", {"facebook": FakeAdapter("facebook"), "instagram": ig}
    )


def _settings_lines(output: str) -> dict[str, str]:
    lines = [line.split(None, 1) for line in output.splitlines() if line.strip()]
    return {key: value for key, value in lines}


def test_commands_are_registered():
    result = runner.invoke(build_app(), ["--help"])
    assert result.exit_code == 0
    for command in ("dispatch", "publish", "settings", "db"):
        assert command in result.output


def test_unknown_setting_is_rejected():
    result = runner.invoke(build_app(), ["settings", "set", "database_url", "x"])
    assert result.exit_code == 1


# ---------------------------------------------------------------------------
# settings
# ---------------------------------------------------------------------------


def test_settings_set_then_show_masks_secrets(cli_db):
    app = build_app()
    for key, value in (
        ("notifications_webhook_url", " https://hooks.test/notify "),
        ("notifications_webhook_token", "very-secret"),
    ):
        result = runner.invoke(app, ["settings", "set", key, value])
        assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["settings", "show"])

    assert result.exit_code == 0
    assert "very-secret" not in result.output
    assert _settings_lines(result.output) == {
        "notifications_webhook_url": "https://hooks.test/notify",
        "notifications_webhook_token": "✓ set",
        "internal_webhook_url": "✗ missing",
    }


def test_settings_set_rejects_malformed_url(cli_db):
    result = runner.invoke(
        build_app(),
        ["settings", "set", "internal_webhook_url", "http://exa mple.com:abc/hook"],
    )

    assert result.exit_code == 1
    with Session(cli_db) as db:
        assert db.scalars(select(SystemSetting)).all() == []


# ---------------------------------------------------------------------------
# publish
# ---------------------------------------------------------------------------


def test_publish_unknown_content_exits_2(cli_db, adapters):
    result = runner.invoke(build_app(), ["publish", "missing"])
    assert result.exit_code == 2


def test_publish_with_pending_adjustments_exits_2(content, adapters):
    with Session(content) as db:
        db.add(AdjustmentRequest(content_id="content-1", body="Change the caption"))
        db.commit()

    result = runner.invoke(build_app(), ["publish", "content-1"])

    assert result.exit_code == 2


def test_publish_with_failed_account_exits_1(content, adapters):
    result = runner.invoke(build_app(), ["publish", "content-1"])

    assert result.exit_code == 1
    assert "Media rejected" in result.output
    with Session(content) as db:
        assert db.get(ContentItem, "content-1").published_at is None


def test_publish_all_accounts_ok_exits_0(content, monkeypatch):
    monkeypatch.setattr(
        registry,
        "_ADAPTERS",
        {"facebook": FakeAdapter("facebook"), "instagram": FakeAdapter("instagram")},
    )

    result = runner.invoke(build_app(), ["publish", "content-1"])

    assert result.exit_code == 0, result.output
    with Session(content) as db:
        assert db.get(ContentItem, "content-1").published_at is not None
