"""Shared Pydantic schemas for the delivery API.

All request bodies and response models live here so they appear correctly
in the FastAPI/OpenAPI docs and can be reused across routers.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------


class StatusResponse(BaseModel):
    """Generic operation acknowledgement."""

    status: str = Field(..., examples=["ok"])


class ErrorDetail(BaseModel):
    """Error envelope for 404 / 409 responses."""

    error: str = Field(..., examples=["pending_adjustments"])
    message: str
    content_id: str | None = None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class DispatchResultOut(BaseModel):
    id: str
    status: str = Field(..., description="sent | failed | skipped")
    error: str | None = None


class DispatchResponse(BaseModel):
    processed: int
    sent: int
    failed: int
    results: list[DispatchResultOut]


# ---------------------------------------------------------------------------
# Publish
# ---------------------------------------------------------------------------


class PublishRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content_item_id: str = Field(..., alias="contentItemId", min_length=1)


class PublishResultOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    platform: str
    account: str
    remote_id: str = Field(..., alias="remoteId")


class PublishErrorOut(BaseModel):
    platform: str
    account: str
    message: str
    kind: str


class PublishResponse(BaseModel):
    success: bool = Field(..., description="True when at least one account succeeded")
    results: list[PublishResultOut]
    errors: list[PublishErrorOut]


# ---------------------------------------------------------------------------
# Admin settings
# ---------------------------------------------------------------------------


class SettingOut(BaseModel):
    key: str
    value: str
    updated_at: datetime | None = None


class SettingIn(BaseModel):
    value: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Admin agencies
# ---------------------------------------------------------------------------


class AgencyWebhookIn(BaseModel):
    """``url: null`` removes the agency webhook; notifications then use the global one."""

    url: str | None = None


class AgencyWebhookOut(BaseModel):
    agency_id: str
    configured: bool
