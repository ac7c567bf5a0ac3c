import httpx
import pytest

from app.campaigns.validator import (
    check_creative_images,
    is_trusted_storage_url,
    resolve_image_url,
    validate_ad_images,
)
from app.core.errors import MissingImage, UnreachableImage, ValidationFailed
from app.models.campaign_schemas import AdCreativeInput
from conftest import EXTERNAL_IMAGE, STORAGE_IMAGE


def test_resolve_prefers_storage_url():
    creative = AdCreativeInput(
        id="a", storage_url=STORAGE_IMAGE, imageUrl=EXTERNAL_IMAGE, imageurl="legacy"
    )
    assert resolve_image_url(creative) == STORAGE_IMAGE


def test_resolve_falls_back_in_order():
    assert resolve_image_url(AdCreativeInput(id="a", imageUrl=EXTERNAL_IMAGE, imageurl="x")) == EXTERNAL_IMAGE
    assert resolve_image_url(AdCreativeInput(id="a", imageurl="https://old/1.png")) == "https://old/1.png"


def test_resolve_ignores_blank_values():
    creative = AdCreativeInput(id="a", storage_url="  ", image_url=EXTERNAL_IMAGE)
    assert resolve_image_url(creative) == EXTERNAL_IMAGE
    assert resolve_image_url(AdCreativeInput(id="a")) is None


def test_trusted_storage_url():
    assert is_trusted_storage_url(STORAGE_IMAGE)
    assert not is_trusted_storage_url(EXTERNAL_IMAGE)


async def test_storage_images_are_not_probed(graph):
    urls = await check_creative_images(
        [AdCreativeInput(id="a", storage_url=STORAGE_IMAGE)], transport=graph.transport
    )
    assert urls == [STORAGE_IMAGE]
    assert graph.calls == []


async def test_external_images_are_probed(graph):
    urls = await check_creative_images(
        [AdCreativeInput(id="a", imageUrl=EXTERNAL_IMAGE)], transport=graph.transport
    )
    assert urls == [EXTERNAL_IMAGE]
    assert [(c.method, c.path) for c in graph.calls] == [("HEAD", "/ads/2.png")]


async def test_unreachable_image(graph):
    graph.head_status[EXTERNAL_IMAGE] = 404
    with pytest.raises(UnreachableImage) as exc:
        await check_creative_images(
            [AdCreativeInput(id="a", imageUrl=EXTERNAL_IMAGE)], transport=graph.transport
        )
    assert exc.value.status_code == 404
    assert exc.value.message == (
        f"Image URL {EXTERNAL_IMAGE} is not accessible. "
        "Please ensure all images are processed before creating a campaign."
    )


async def test_probe_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UnreachableImage):
        await check_creative_images(
            [AdCreativeInput(id="a", imageUrl=EXTERNAL_IMAGE)],
            transport=httpx.MockTransport(handler),
        )


async def test_missing_image_stops_before_later_creatives(graph):
    creatives = [
        AdCreativeInput(id="first"),
        AdCreativeInput(id="second", imageUrl=EXTERNAL_IMAGE),
    ]
    with pytest.raises(MissingImage) as exc:
        await check_creative_images(creatives, transport=graph.transport)
    assert exc.value.creative_id == "first"
    assert "Ad first is missing an image URL" in exc.value.message
    assert graph.calls == []


async def test_no_creatives():
    with pytest.raises(ValidationFailed, match="No ad details provided"):
        await check_creative_images([])


async def test_validate_ad_images_reports_instead_of_raising(graph):
    graph.head_status[EXTERNAL_IMAGE] = 403
    result = await validate_ad_images(
        [AdCreativeInput(id="a", imageUrl=EXTERNAL_IMAGE)], transport=graph.transport
    )
    assert result.valid is False
    assert EXTERNAL_IMAGE in result.message

    ok = await validate_ad_images(
        [AdCreativeInput(id="a", storage_url=STORAGE_IMAGE)], transport=graph.transport
    )
    assert ok.valid is True
