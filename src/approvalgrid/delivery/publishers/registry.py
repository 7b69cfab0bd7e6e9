from __future__ import annotations

from typing import Dict

from approvalgrid.delivery.publishers.base import PlatformAdapter
from approvalgrid.delivery.publishers.facebook.adapter import FacebookAdapter
from approvalgrid.delivery.publishers.instagram.adapter import InstagramAdapter

_ADAPTERS: Dict[str, PlatformAdapter] = {
    "facebook": FacebookAdapter(),
    "instagram": InstagramAdapter(),
}


def register_adapter(platform: str, adapter: PlatformAdapter) -> None:
    _ADAPTERS[platform.lower()] = adapter


def get_adapter(platform: str) -> PlatformAdapter:
    try:
        return _ADAPTERS[platform.lower()]
    except KeyError as e:
        raise ValueError(f"No adapter registered for platform={platform}") from e


def registered_platforms() -> list[str]:
    return sorted(_ADAPTERS)
