"""Notification dispatch trigger.

POST /dispatch – run one bounded dispatch pass (called by a scheduler tick)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from approvalgrid.delivery.api.schemas import DispatchResponse
from approvalgrid.delivery.db.session import get_session_factory
from approvalgrid.delivery.dispatch.engine import DispatchEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dispatch"])


def get_dispatch_engine() -> DispatchEngine:
    return DispatchEngine(get_session_factory())


@router.post(
    "/dispatch",
    response_model=DispatchResponse,
    response_model_exclude_none=True,
    summary="Dispatch pending notifications",
)
async def dispatch(
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> dict:
    report = await engine.dispatch_pending()
    return report.summary()
