from __future__ import annotations

import logging

from approvalgrid.delivery.publishers.base import (
    AdapterError,
    AdapterErrorKind,
    Container,
    ContainerStatus,
    PublishAccount,
    PublishContent,
)
from approvalgrid.delivery.publishers.graph import GraphClient

logger = logging.getLogger(__name__)

# status_code values of an IG media container
_FINISHED = {"FINISHED", "PUBLISHED"}
_ERROR = {"ERROR", "EXPIRED"}


class InstagramAdapter:
    """Instagram business accounts through the Graph API content publishing flow.

    container (``/{ig_id}/media``) -> poll ``status_code`` -> ``/{ig_id}/media_publish``
    """

    platform = "instagram"

    def __init__(self, graph: GraphClient | None = None) -> None:
        self._graph = graph or GraphClient()

    @staticmethod
    def _credentials(account: PublishAccount) -> tuple[str, str]:
        if not account.instagram_business_account_id:
            raise AdapterError(
                AdapterErrorKind.MISSING_CREDENTIAL,
                "Instagram business account id not found",
            )
        if not account.access_token:
            raise AdapterError(
                AdapterErrorKind.MISSING_CREDENTIAL, "Missing access token"
            )
        return account.instagram_business_account_id, account.access_token

    async def create_container(
        self, content: PublishContent, account: PublishAccount
    ) -> Container:
        if content.content_type == "story":
            raise AdapterError(
                AdapterErrorKind.UNSUPPORTED,
                "Instagram story publishing is not supported by the API",
            )

        media = content.first_media
        if media is None or not media.location:
            raise AdapterError(
                AdapterErrorKind.MISSING_MEDIA,
                "Instagram requires media (image or video)",
            )

        ig_id, token = self._credentials(account)

        params: dict[str, str | None] = {"caption": content.caption}
        if content.content_type == "reels":
            params["media_type"] = "REELS"
            params["video_url"] = media.location
            params["cover_url"] = media.thumbnail_location
        elif media.kind == "image":
            # carousel posts go out as their first item
            params["image_url"] = media.location
        elif media.kind == "video":
            params["media_type"] = "VIDEO"
            params["video_url"] = media.location
            if content.content_type != "carousel":
                params["cover_url"] = media.thumbnail_location
        else:
            raise AdapterError(
                AdapterErrorKind.UNSUPPORTED,
                f"Media kind {media.kind!r} is not supported by Instagram",
            )

        data = await self._graph.post(f"{ig_id}/media", token, params)
        creation_id = data.get("id")
        if not creation_id:
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED, "Instagram returned no container id"
            )
        logger.debug(
            "Instagram container %s created (content=%s)", creation_id, content.id
        )

        return Container(
            id=str(creation_id), media_type=params.get("media_type") or "IMAGE"
        )

    async def poll_status(
        self, container: Container, account: PublishAccount
    ) -> ContainerStatus:
        _, token = self._credentials(account)
        data = await self._graph.get(container.id, token, {"fields": "status_code"})
        code = str(data.get("status_code") or "").upper()

        if code in _FINISHED:
            return ContainerStatus.FINISHED
        if code in _ERROR:
            return ContainerStatus.ERROR
        return ContainerStatus.IN_PROGRESS

    async def publish(self, container: Container, account: PublishAccount) -> str:
        ig_id, token = self._credentials(account)
        data = await self._graph.post(
            f"{ig_id}/media_publish", token, {"creation_id": container.id}
        )
        post_id = data.get("id")
        if not post_id:
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED, "Instagram returned no post id"
            )
        logger.info("Instagram container %s published as %s", container.id, post_id)
        return str(post_id)
