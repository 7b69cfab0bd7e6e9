"""Tests for the Instagram adapter over a mocked Graph API."""

from __future__ import annotations

import httpx
import pytest

from approvalgrid.delivery.publishers.base import (
    AdapterError,
    AdapterErrorKind,
    Container,
    ContainerStatus,
    MediaRef,
    PublishAccount,
    PublishContent,
)
from approvalgrid.delivery.publishers.graph import GraphClient
from approvalgrid.delivery.publishers.instagram.adapter import InstagramAdapter

from fakes import RecordingHandler, form

ACCOUNT = PublishAccount(
    id="a1",
    platform="instagram",
    account_name="rossi.bakery",
    access_token="ig-token",
    instagram_business_account_id="1784",
)
IMAGE = MediaRef(kind="image", location="https://cdn.test/a.jpg")
VIDEO = MediaRef(
    kind="video",
    location="https://cdn.test/v.mp4",
    thumbnail_location="https://cdn.test/v.jpg",
)


def _adapter(handler: RecordingHandler) -> InstagramAdapter:
    return InstagramAdapter(GraphClient("https://graph.test/v18.0", http=handler.client()))


def _content(content_type: str, *media: MediaRef) -> PublishContent:
    return PublishContent(id="c1", content_type=content_type, caption="Hello", media=media)


async def test_image_container():
    handler = RecordingHandler(httpx.Response(200, json={"id": "cont-1"}))

    container = await _adapter(handler).create_container(_content("image", IMAGE), ACCOUNT)

    assert container.id == "cont-1"
    req = handler.requests[0]
    assert req.method == "POST"
    assert req.url.path == "/v18.0/1784/media"
    assert req.headers["Authorization"] == "Bearer ig-token"
    assert "ig-token" not in str(req.url)
    assert form(req) == {"caption": "Hello", "image_url": "https://cdn.test/a.jpg"}


async def test_reels_container_uses_video_and_cover():
    handler = RecordingHandler(httpx.Response(200, json={"id": "cont-2"}))

    container = await _adapter(handler).create_container(_content("reels", VIDEO), ACCOUNT)

    assert container.media_type == "REELS"
    assert form(handler.requests[0]) == {
        "caption": "Hello",
        "media_type": "REELS",
        "video_url": "https://cdn.test/v.mp4",
        "cover_url": "https://cdn.test/v.jpg",
    }


async def test_carousel_goes_out_as_first_item():
    handler = RecordingHandler(httpx.Response(200, json={"id": "cont-3"}))

    await _adapter(handler).create_container(_content("carousel", IMAGE, VIDEO), ACCOUNT)

    assert form(handler.requests[0])["image_url"] == "https://cdn.test/a.jpg"


async def test_story_is_unsupported_without_network():
    handler = RecordingHandler()

    with pytest.raises(AdapterError) as exc:
        await _adapter(handler).create_container(_content("story", IMAGE), ACCOUNT)

    assert exc.value.kind == AdapterErrorKind.UNSUPPORTED
    assert handler.requests == []


async def test_missing_media():
    handler = RecordingHandler()

    with pytest.raises(AdapterError) as exc:
        await _adapter(handler).create_container(_content("image"), ACCOUNT)

    assert exc.value.kind == AdapterErrorKind.MISSING_MEDIA


async def test_missing_business_account_id():
    handler = RecordingHandler()
    account = PublishAccount(
        id="a2", platform="instagram", account_name="x", access_token="t"
    )

    with pytest.raises(AdapterError) as exc:
        await _adapter(handler).create_container(_content("image", IMAGE), account)

    assert exc.value.kind == AdapterErrorKind.MISSING_CREDENTIAL


async def test_graph_error_is_remote_rejected():
    handler = RecordingHandler(
        httpx.Response(400, json={"error": {"message": "Invalid image URL", "code": 9004}})
    )

    with pytest.raises(AdapterError) as exc:
        await _adapter(handler).create_container(_content("image", IMAGE), ACCOUNT)

    assert exc.value.kind == AdapterErrorKind.REMOTE_REJECTED
    assert exc.value.message == "Invalid image URL"


async def test_network_error_is_remote_rejected():
    handler = RecordingHandler(httpx.ConnectError("boom"))

    with pytest.raises(AdapterError) as exc:
        await _adapter(handler).create_container(_content("image", IMAGE), ACCOUNT)

    assert exc.value.kind == AdapterErrorKind.REMOTE_REJECTED
    assert exc.value.message == "Graph API request failed: ConnectError"


@pytest.mark.parametrize(
    "status_code, expected",
    [
        ("FINISHED", ContainerStatus.FINISHED),
        ("IN_PROGRESS", ContainerStatus.IN_PROGRESS),
        ("ERROR", ContainerStatus.ERROR),
        ("EXPIRED", ContainerStatus.ERROR),
    ],
)
async def test_poll_status(status_code, expected):
    handler = RecordingHandler(httpx.Response(200, json={"status_code": status_code}))
    container = Container(id="cont-1", media_type="IMAGE")

    assert await _adapter(handler).poll_status(container, ACCOUNT) == expected
    req = handler.requests[0]
    assert req.url.path == "/v18.0/cont-1"
    assert req.url.params["fields"] == "status_code"


async def test_publish_returns_post_id():
    handler = RecordingHandler(httpx.Response(200, json={"id": "post-9"}))
    container = Container(id="cont-1", media_type="IMAGE")

    assert await _adapter(handler).publish(container, ACCOUNT) == "post-9"
    req = handler.requests[0]
    assert req.url.path == "/v18.0/1784/media_publish"
    assert form(req) == {"creation_id": "cont-1"}


async def test_container_and_publish_are_logged(caplog):
    caplog.set_level("DEBUG", logger="approvalgrid.delivery.publishers.instagram.adapter")
    handler = RecordingHandler(
        httpx.Response(200, json={"id": "cr-1"}),
        httpx.Response(200, json={"id": "ig-post-1"}),
    )
    adapter = _adapter(handler)

    container = await adapter.create_container(_content("image", IMAGE), ACCOUNT)
    await adapter.publish(container, ACCOUNT)

    messages = [r.getMessage() for r in caplog.records]
    assert "Instagram container cr-1 created (content=c1)" in messages
    assert "Instagram container cr-1 published as ig-post-1" in messages
