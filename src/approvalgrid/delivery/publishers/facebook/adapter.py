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

TEXT = "TEXT"
PHOTO = "PHOTO"
VIDEO = "VIDEO"
STORY_PHOTO = "STORY_PHOTO"


class FacebookAdapter:
    """Facebook pages.

    Every content type is first staged unpublished on the page (the
    "container") and made visible by the publish call. Only videos need
    processing, so only they hit the network when polled.
    """

    platform = "facebook"

    def __init__(self, graph: GraphClient | None = None) -> None:
        self._graph = graph or GraphClient()

    @staticmethod
    def _credentials(account: PublishAccount) -> tuple[str, str]:
        if not account.page_id:
            raise AdapterError(
                AdapterErrorKind.MISSING_CREDENTIAL, "Facebook page id not found"
            )
        if not account.access_token:
            raise AdapterError(
                AdapterErrorKind.MISSING_CREDENTIAL, "Missing access token"
            )
        return account.page_id, account.access_token

    async def create_container(
        self, content: PublishContent, account: PublishAccount
    ) -> Container:
        container = await self._stage(content, account)
        logger.debug(
            "Facebook container %s staged (type=%s, content=%s)",
            container.id,
            container.media_type,
            content.id,
        )
        return container

    async def _stage(
        self, content: PublishContent, account: PublishAccount
    ) -> Container:
        page_id, token = self._credentials(account)
        media = content.first_media
        ctype = content.content_type

        if ctype == "story":
            if media is None or not media.location:
                raise AdapterError(AdapterErrorKind.MISSING_MEDIA, "Story requires media")
            if media.kind != "image":
                raise AdapterError(
                    AdapterErrorKind.UNSUPPORTED,
                    "Facebook video stories require a resumable upload session",
                )
            data = await self._graph.post(
                f"{page_id}/photos", token, {"url": media.location, "published": False}
            )
            return Container(id=self._id(data), media_type=STORY_PHOTO)

        if media is not None and media.location:
            if media.kind == "image":
                data = await self._graph.post(
                    f"{page_id}/photos",
                    token,
                    {
                        "url": media.location,
                        "caption": content.caption,
                        "published": False,
                    },
                )
                return Container(
                    id=self._id(data),
                    media_type=PHOTO,
                    publish_params={"message": content.caption},
                )

            if media.kind == "video" and ctype != "carousel":
                data = await self._graph.post(
                    f"{page_id}/videos",
                    token,
                    {
                        "file_url": media.location,
                        "description": content.caption,
                        "published": False,
                    },
                )
                return Container(id=self._id(data), media_type=VIDEO)

        if ctype == "reels":
            raise AdapterError(AdapterErrorKind.MISSING_MEDIA, "Reels require a video")

        # plain text post
        data = await self._graph.post(
            f"{page_id}/feed", token, {"message": content.caption, "published": False}
        )
        return Container(id=self._id(data), media_type=TEXT)

    async def poll_status(
        self, container: Container, account: PublishAccount
    ) -> ContainerStatus:
        if container.media_type != VIDEO:
            return ContainerStatus.FINISHED

        _, token = self._credentials(account)
        data = await self._graph.get(container.id, token, {"fields": "status"})
        status = data.get("status") or {}
        video_status = str(status.get("video_status") or "").lower()

        if video_status == "ready":
            return ContainerStatus.FINISHED
        if video_status == "error":
            return ContainerStatus.ERROR
        return ContainerStatus.IN_PROGRESS

    async def publish(self, container: Container, account: PublishAccount) -> str:
        page_id, token = self._credentials(account)

        if container.media_type == PHOTO:
            data = await self._graph.post(
                f"{page_id}/feed",
                token,
                {
                    "message": container.publish_params.get("message", ""),
                    "attached_media": [{"media_fbid": container.id}],
                },
            )
            post_id = self._id(data)
            logger.info("Facebook photo %s published as %s", container.id, post_id)
            return post_id

        if container.media_type == STORY_PHOTO:
            data = await self._graph.post(
                f"{page_id}/photo_stories", token, {"photo_id": container.id}
            )
            story_id = self._id(data)
            logger.info("Facebook story %s published as %s", container.id, story_id)
            return story_id

        field = "published" if container.media_type == VIDEO else "is_published"
        data = await self._graph.post(container.id, token, {field: True})
        if data.get("success") is False:
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED, "Facebook refused to publish the post"
            )
        logger.info(
            "Facebook %s container %s published", container.media_type, container.id
        )
        return container.id

    @staticmethod
    def _id(data: dict) -> str:
        remote_id = data.get("post_id") or data.get("id")
        if not remote_id:
            raise AdapterError(
                AdapterErrorKind.REMOTE_REJECTED, "Facebook returned no id"
            )
        return str(remote_id)
