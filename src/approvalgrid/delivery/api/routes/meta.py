from __future__ import annotations

import logging

from fastapi import APIRouter

from approvalgrid.delivery.publishers.registry import registered_platforms

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meta"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/platforms")
async def platforms():
    return {"platforms": registered_platforms()}
