from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class AdapterErrorKind(str, Enum):
    UNSUPPORTED = "unsupported"
    MISSING_MEDIA = "missing_media"
    MISSING_CREDENTIAL = "missing_credential"
    REMOTE_REJECTED = "remote_rejected"
    TIMEOUT = "timeout"


class AdapterError(Exception):
    """Adapter failure. ``message`` is sanitized and safe to persist."""

    def __init__(self, kind: AdapterErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class ContainerStatus(str, Enum):
    FINISHED = "finished"
    ERROR = "error"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class MediaRef:
    kind: str  # image | video
    location: str
    thumbnail_location: str | None = None


@dataclass(frozen=True)
class PublishContent:
    id: str
    content_type: str
    caption: str
    media: tuple[MediaRef, ...] = ()

    @property
    def first_media(self) -> MediaRef | None:
        return self.media[0] if self.media else None


@dataclass(frozen=True)
class PublishAccount:
    id: str
    platform: str
    account_name: str
    access_token: str | None = field(default=None, repr=False)
    page_id: str | None = None
    instagram_business_account_id: str | None = None


@dataclass(frozen=True)
class Container:
    """Platform-side staging object created before publishing."""

    id: str
    media_type: str
    # Whatever the platform's publish call needs besides the container id.
    publish_params: dict[str, Any] = field(default_factory=dict)


class PlatformAdapter(Protocol):
    platform: str

    async def create_container(
        self, content: PublishContent, account: PublishAccount
    ) -> Container: ...

    async def poll_status(
        self, container: Container, account: PublishAccount
    ) -> ContainerStatus: ...

    async def publish(self, container: Container, account: PublishAccount) -> str: ...
