"""Service token middleware.

Inbound triggers come from the scheduler and the main application backend,
both holding the shared ``API_TOKEN``. Validates ``Authorization: Bearer``
on every request except OpenAPI/docs routes and the health check.
"""

from __future__ import annotations

import hmac
import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from approvalgrid.delivery.config.settings import settings

logger = logging.getLogger(__name__)

# Routes that don't require a token
_OPEN_PATHS: frozenset[str] = frozenset(
    {
        "/docs",
        "/redoc",
        "/openapi.json",
        "/favicon.ico",
        "/health",
    }
)


def _is_open(path: str) -> bool:
    """Return True if the path should bypass auth."""
    return path in _OPEN_PATHS


def _bearer(header: str) -> str | None:
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that checks the service token on protected routes."""

    def __init__(self, app, token: str | None = None) -> None:
        super().__init__(app)
        self._token = settings.API_TOKEN if token is None else token

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not self._token or _is_open(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            return JSONResponse(
                status_code=401,
                content={"detail": "Missing Authorization header"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        token = _bearer(auth_header)
        if token is None or not hmac.compare_digest(token, self._token):
            logger.warning("Rejected request to %s: invalid token", request.url.path)
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid token"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
