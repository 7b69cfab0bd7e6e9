"""Admin runtime settings.

Webhook endpoints can be changed here without a redeploy; the dispatch engine
picks the new values up at the start of its next pass.

GET /admin/settings        – list runtime settings (secrets masked)
PUT /admin/settings/{key}  – create or update one setting
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from approvalgrid.delivery.api.schemas import SettingIn, SettingOut
from approvalgrid.delivery.config.provider import (
    SECRET_KEYS,
    SETTING_KEYS,
    validate_setting,
)
from approvalgrid.delivery.db.models import SystemSetting
from approvalgrid.delivery.db.session import get_db
from approvalgrid.delivery.db.store import list_settings, upsert_setting

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/settings", tags=["admin"])

MASK = "********"


def _out(obj: SystemSetting) -> SettingOut:
    value = MASK if obj.key in SECRET_KEYS else obj.value
    return SettingOut(key=obj.key, value=value, updated_at=obj.updated_at)


@router.get("", response_model=list[SettingOut], summary="List runtime settings")
async def get_settings(db: AsyncSession = Depends(get_db)) -> list[SettingOut]:
    return [_out(s) for s in await list_settings(db)]


@router.put("/{key}", response_model=SettingOut, summary="Update a runtime setting")
async def put_setting(
    key: str,
    body: SettingIn,
    db: AsyncSession = Depends(get_db),
) -> SettingOut:
    if key not in SETTING_KEYS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "unknown_setting", "allowed": SETTING_KEYS},
        )

    try:
        value = validate_setting(key, body.value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "invalid_setting", "message": str(e)},
        ) from e

    obj = await upsert_setting(db, key, value)
    await db.commit()
    await db.refresh(obj)
    logger.info("Runtime setting %s updated", key)
    return _out(obj)
