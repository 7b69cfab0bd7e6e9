"""Social publishing trigger.

POST /publish – publish one content item to its linked social accounts
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from approvalgrid.delivery.api.schemas import (
    ErrorDetail,
    PublishErrorOut,
    PublishRequest,
    PublishResponse,
    PublishResultOut,
)
from approvalgrid.delivery.db.session import get_session_factory
from approvalgrid.delivery.errors import ContentNotFound, PreconditionFailed
from approvalgrid.delivery.orchestrator.orchestrator import PublishOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["publish"])


def get_orchestrator() -> PublishOrchestrator:
    return PublishOrchestrator(get_session_factory())


@router.post(
    "/publish",
    response_model=PublishResponse,
    summary="Publish a content item",
    description=(
        "Publishes the content item to every active linked account of its client "
        "(restricted to the item's target channels when set). Per-account failures "
        "are reported in `errors`; only precondition failures return an error status."
    ),
    responses={
        404: {"model": ErrorDetail},
        409: {"model": ErrorDetail},
    },
)
async def publish(
    body: PublishRequest,
    orchestrator: PublishOrchestrator = Depends(get_orchestrator),
) -> PublishResponse:
    try:
        report = await orchestrator.publish(body.content_item_id)
    except PreconditionFailed as e:
        code = (
            status.HTTP_404_NOT_FOUND
            if isinstance(e, ContentNotFound)
            else status.HTTP_409_CONFLICT
        )
        raise HTTPException(
            status_code=code,
            detail={"error": e.code, "message": e.message, "content_id": e.content_id},
        )

    return PublishResponse(
        success=report.success,
        results=[
            PublishResultOut(platform=s.platform, account=s.account, remote_id=s.remote_id)
            for s in report.succeeded
        ],
        errors=[
            PublishErrorOut(
                platform=f.platform, account=f.account, message=f.message, kind=f.kind.value
            )
            for f in report.failed
        ],
    )
