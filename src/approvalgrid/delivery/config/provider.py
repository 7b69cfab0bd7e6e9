"""Webhook endpoint configuration.

The dispatch engine never reads endpoint URLs from global state directly: it
receives an ``EndpointProvider`` and calls ``refresh()`` once at the start of
every run, so operator changes apply from the next run on without a redeploy.

Notifications go to the owning agency's own webhook when it has one, and to
the global notifications webhook otherwise. Internal alerts always go to the
internal webhook.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlsplit

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from approvalgrid.delivery.config.settings import Settings, settings as default_settings
from approvalgrid.delivery.db.store import get_settings_map

logger = logging.getLogger(__name__)

SCOPE_NOTIFICATIONS = "notifications"
SCOPE_INTERNAL = "internal"

# system_settings keys
NOTIFICATIONS_URL_KEY = "notifications_webhook_url"
NOTIFICATIONS_TOKEN_KEY = "notifications_webhook_token"
INTERNAL_URL_KEY = "internal_webhook_url"

SETTING_KEYS = [NOTIFICATIONS_URL_KEY, NOTIFICATIONS_TOKEN_KEY, INTERNAL_URL_KEY]
SECRET_KEYS = frozenset({NOTIFICATIONS_TOKEN_KEY})
URL_KEYS = frozenset({NOTIFICATIONS_URL_KEY, INTERNAL_URL_KEY})


@dataclass(frozen=True)
class WebhookEndpoint:
    url: str
    token: str | None = field(default=None, repr=False)


def redact_url(url: str) -> str:
    """Scheme and host only; webhook paths often embed a secret."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/…" if parts.netloc else "<invalid-url>"


def validate_webhook_url(url: str) -> str:
    """Return the stripped URL or raise ``ValueError`` if it is not absolute http(s)."""
    url = url.strip()
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid webhook URL: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError("Webhook URL must be an absolute http(s) URL")
    return url


def validate_setting(key: str, value: str) -> str:
    value = value.strip()
    if key in URL_KEYS:
        return validate_webhook_url(value)
    return value


def scope_for_channel(channel: str) -> str:
    return SCOPE_INTERNAL if channel == SCOPE_INTERNAL else SCOPE_NOTIFICATIONS


class EndpointProvider(Protocol):
    async def refresh(self) -> None: ...

    def endpoint_for(
        self, scope: str, agency_url: str | None = None
    ) -> WebhookEndpoint | None: ...


def _build(url: str | None, token: str | None) -> WebhookEndpoint | None:
    url = (url or "").strip()
    if not url:
        return None
    return WebhookEndpoint(url=url, token=(token or "").strip() or None)


class StaticEndpointProvider:
    """Endpoints taken from process settings only."""

    def __init__(self, cfg: Settings | None = None) -> None:
        self._cfg = cfg or default_settings
        self._endpoints: dict[str, WebhookEndpoint | None] = {}
        self._load({})

    def _load(self, overrides: dict[str, str]) -> None:
        cfg = self._cfg
        self._endpoints = {
            SCOPE_NOTIFICATIONS: _build(
                overrides.get(NOTIFICATIONS_URL_KEY, cfg.NOTIFY_WEBHOOK_URL),
                overrides.get(NOTIFICATIONS_TOKEN_KEY, cfg.NOTIFY_WEBHOOK_TOKEN),
            ),
            SCOPE_INTERNAL: _build(
                overrides.get(INTERNAL_URL_KEY, cfg.INTERNAL_WEBHOOK_URL), None
            ),
        }

    async def refresh(self) -> None:
        return None

    def endpoint_for(
        self, scope: str, agency_url: str | None = None
    ) -> WebhookEndpoint | None:
        # Agency webhooks are plain URLs: the global token is not sent to them.
        if scope == SCOPE_NOTIFICATIONS:
            own = _build(agency_url, None)
            if own is not None:
                return own
        return self._endpoints.get(scope)


class SystemSettingsEndpointProvider(StaticEndpointProvider):
    """Endpoints from the ``system_settings`` table, falling back to settings.

    Values are cached between ``refresh()`` calls.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cfg: Settings | None = None,
    ) -> None:
        super().__init__(cfg)
        self._session_factory = session_factory

    async def refresh(self) -> None:
        async with self._session_factory() as db:
            overrides = await get_settings_map(db, SETTING_KEYS)
        self._load(overrides)

        for scope, endpoint in self._endpoints.items():
            logger.debug(
                "Webhook endpoint scope=%s url=%s",
                scope,
                redact_url(endpoint.url) if endpoint else None,
            )
