"""Admin per-agency notification webhooks.

PUT /admin/agencies/{agency_id}/webhook – set or clear the agency's own webhook
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from approvalgrid.delivery.api.schemas import AgencyWebhookIn, AgencyWebhookOut
from approvalgrid.delivery.config.provider import validate_webhook_url
from approvalgrid.delivery.db.session import get_db
from approvalgrid.delivery.db.store import set_agency_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/agencies", tags=["admin"])


@router.put(
    "/{agency_id}/webhook",
    response_model=AgencyWebhookOut,
    summary="Set an agency's notification webhook",
)
async def put_agency_webhook(
    agency_id: str,
    body: AgencyWebhookIn,
    db: AsyncSession = Depends(get_db),
) -> AgencyWebhookOut:
    url = None
    if body.url is not None and body.url.strip():
        try:
            url = validate_webhook_url(body.url)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"error": "invalid_setting", "message": str(e)},
            ) from e

    agency = await set_agency_webhook(db, agency_id, url)
    if agency is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "agency_not_found"},
        )
    await db.commit()

    # The URL is not echoed back; it usually embeds a secret.
    logger.info("Agency %s webhook %s", agency_id, "set" if url else "cleared")
    return AgencyWebhookOut(agency_id=agency_id, configured=url is not None)
