"""Minimal Graph API client shared by the Facebook and Instagram adapters.

The access token is sent as a bearer header so it never shows up in URLs,
exception messages or logs.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from approvalgrid.delivery.config.settings import settings
from approvalgrid.delivery.publishers.base import AdapterError, AdapterErrorKind

logger = logging.getLogger(__name__)


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class GraphClient:
    def __init__(
        self,
        base_url: str | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = (base_url or settings.GRAPH_API_URL).rstrip("/")
        self._http = http
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def post(self, path: str, token: str, data: dict[str, Any]) -> dict[str, Any]:
        form = {k: _form_value(v) for k, v in data.items() if v is not None}
        return await self._request("POST", path, token, data=form)

    async def get(
        self, path: str, token: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self._request("GET", path, token, params=params or {})

    async def _request(
        self, method: str, path: str, token: str, **kwargs: Any
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {token}"}

        try:
            if self._http is not None:
                resp = await self._http.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException:
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED, "Graph API request timed out"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED,
                f"Graph API request failed: {type(exc).__name__}",
            )

        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            err = body["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            logger.info("Graph API %s %s rejected: %s", method, path, message)
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED, message or "Graph API error"
            )

        if not resp.is_success or not isinstance(body, dict):
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED,
                f"Graph API returned status {resp.status_code}",
            )

        return body
