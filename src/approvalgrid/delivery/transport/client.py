"""Outbound webhook transport.

One logical send is at most two HTTP calls: a JSON POST and, when that does
not succeed, a GET carrying the same payload as query parameters (some
webhook receivers only accept query-string triggers). ``send`` never raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from approvalgrid.delivery.config.provider import WebhookEndpoint, redact_url
from approvalgrid.delivery.config.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportOutcome:
    ok: bool
    http_status: int | None = None
    method: str | None = None  # method of the last attempt
    error: str | None = None  # sanitized, safe to persist


def _query_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, bool)):
        return json.dumps(value, default=str)
    return str(value)


def flatten_query(payload: dict[str, Any]) -> dict[str, str]:
    """Top-level fields as strings; nested structures JSON-encoded per field."""
    return {key: _query_value(value) for key, value in payload.items()}


class WebhookTransport:
    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._http = http
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def send(
        self, endpoint: WebhookEndpoint, payload: dict[str, Any]
    ) -> TransportOutcome:
        if self._http is not None:
            return await self._send(self._http, endpoint, payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._send(client, endpoint, payload)

    async def _send(
        self,
        client: httpx.AsyncClient,
        endpoint: WebhookEndpoint,
        payload: dict[str, Any],
    ) -> TransportOutcome:
        target = redact_url(endpoint.url)

        headers = {"Content-Type": "application/json"}
        if endpoint.token:
            headers["Authorization"] = f"Bearer {endpoint.token}"

        status: int | None = None
        try:
            resp = await client.post(
                endpoint.url,
                content=json.dumps(payload, default=str),
                headers=headers,
            )
            status = resp.status_code
            if resp.is_success:
                return TransportOutcome(ok=True, http_status=status, method="POST")
            logger.info("Webhook POST to %s returned %s, trying GET", target, status)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "Webhook POST to %s failed (%s), trying GET",
                target,
                type(exc).__name__,
            )

        try:
            resp = await client.get(endpoint.url, params=flatten_query(payload))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "Webhook GET to %s failed (%s)", target, type(exc).__name__
            )
            return TransportOutcome(
                ok=False,
                http_status=status,
                method="GET",
                error=f"Webhook delivery failed: {type(exc).__name__}",
            )

        if resp.is_success:
            return TransportOutcome(ok=True, http_status=resp.status_code, method="GET")

        logger.warning("Webhook GET to %s returned %s", target, resp.status_code)
        return TransportOutcome(
            ok=False,
            http_status=resp.status_code,
            method="GET",
            error=f"Webhook delivery failed with status {resp.status_code}",
        )
