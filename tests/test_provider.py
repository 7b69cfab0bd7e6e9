"""Tests for webhook endpoint resolution."""

from __future__ import annotations

import pytest

from approvalgrid.delivery.config.provider import (
    SCOPE_INTERNAL,
    SCOPE_NOTIFICATIONS,
    StaticEndpointProvider,
    SystemSettingsEndpointProvider,
    redact_url,
    scope_for_channel,
    validate_setting,
    validate_webhook_url,
)
from approvalgrid.delivery.config.settings import Settings
from approvalgrid.delivery.db.models import SystemSetting


def test_static_provider_reads_settings():
    provider = StaticEndpointProvider(
        Settings(NOTIFY_WEBHOOK_URL=" https://hooks.test/a ", NOTIFY_WEBHOOK_TOKEN="")
    )
    endpoint = provider.endpoint_for(SCOPE_NOTIFICATIONS)
    assert endpoint.url == "https://hooks.test/a"
    assert endpoint.token is None
    assert provider.endpoint_for(SCOPE_INTERNAL) is None


async def test_system_settings_override_defaults(session_factory):
    async with session_factory() as db:
        db.add_all(
            [
                SystemSetting(key="notifications_webhook_url", value="https://db.test/n"),
                SystemSetting(key="notifications_webhook_token", value="db-token"),
            ]
        )
        await db.commit()

    provider = SystemSettingsEndpointProvider(
        session_factory,
        Settings(
            NOTIFY_WEBHOOK_URL="https://env.test/n",
            INTERNAL_WEBHOOK_URL="https://env.test/i",
        ),
    )
    # env defaults until the first refresh
    assert provider.endpoint_for(SCOPE_NOTIFICATIONS).url == "https://env.test/n"

    await provider.refresh()

    notifications = provider.endpoint_for(SCOPE_NOTIFICATIONS)
    assert notifications.url == "https://db.test/n"
    assert notifications.token == "db-token"
    assert provider.endpoint_for(SCOPE_INTERNAL).url == "https://env.test/i"


async def test_refresh_picks_up_changes_without_restart(session_factory):
    provider = SystemSettingsEndpointProvider(session_factory, Settings())
    await provider.refresh()
    assert provider.endpoint_for(SCOPE_INTERNAL) is None

    async with session_factory() as db:
        db.add(SystemSetting(key="internal_webhook_url", value="https://db.test/i"))
        await db.commit()

    await provider.refresh()
    assert provider.endpoint_for(SCOPE_INTERNAL).url == "https://db.test/i"


def test_token_is_not_in_repr():
    provider = StaticEndpointProvider(
        Settings(NOTIFY_WEBHOOK_URL="https://hooks.test/a", NOTIFY_WEBHOOK_TOKEN="hush")
    )
    assert "hush" not in repr(provider.endpoint_for(SCOPE_NOTIFICATIONS))


def test_redact_url_keeps_only_scheme_and_host():
    assert redact_url("https://hooks.test/path/secret?x=1") == "https://hooks.test/…"


def test_scope_for_channel():
    assert scope_for_channel("internal") == SCOPE_INTERNAL
    assert scope_for_channel("email") == SCOPE_NOTIFICATIONS
    assert scope_for_channel("whatsapp") == SCOPE_NOTIFICATIONS


def test_agency_url_wins_for_notifications_only():
    provider = StaticEndpointProvider(
        Settings(
            NOTIFY_WEBHOOK_URL="https://hooks.test/a",
            NOTIFY_WEBHOOK_TOKEN="tok",
            INTERNAL_WEBHOOK_URL="https://hooks.test/i",
        )
    )

    own = provider.endpoint_for(SCOPE_NOTIFICATIONS, " https://acme.test/hook ")
    assert own.url == "https://acme.test/hook"
    assert own.token is None

    assert provider.endpoint_for(SCOPE_NOTIFICATIONS, "").url == "https://hooks.test/a"
    assert provider.endpoint_for(SCOPE_INTERNAL, "https://acme.test/hook").url == (
        "https://hooks.test/i"
    )


def test_agency_url_without_global_webhook():
    provider = StaticEndpointProvider(Settings())
    assert provider.endpoint_for(SCOPE_NOTIFICATIONS) is None
    assert provider.endpoint_for(SCOPE_NOTIFICATIONS, "https://acme.test/hook").url == (
        "https://acme.test/hook"
    )


@pytest.mark.parametrize(
    "url",
    ["http://exa mple.com:abc/hook", "ftp://hooks.test/a", "/relative/path", ""],
)
def test_invalid_webhook_urls_are_rejected(url):
    with pytest.raises(ValueError):
        validate_webhook_url(url)


def test_validate_setting_checks_urls_only():
    assert validate_setting("internal_webhook_url", " https://hooks.test/i ") == (
        "https://hooks.test/i"
    )
    assert validate_setting("notifications_webhook_token", " not a url ") == "not a url"
    with pytest.raises(ValueError):
        validate_setting("notifications_webhook_url", "not a url")
