"""AdWizard — Campaign Request Validator.

Runs once, before any remote object is created, so a campaign is never
half-built on Facebook around a creative whose image cannot be fetched.
"""

from typing import List, Optional, Sequence

import httpx

from app.config import settings
from app.core.errors import MissingImage, UnreachableImage, ValidationFailed
from app.core.logging import get_logger
from app.models.campaign_schemas import AdCreativeInput, ImageValidationResult

logger = get_logger("campaigns.validator")


def resolve_image_url(creative: AdCreativeInput) -> Optional[str]:
    """Trusted storage URL, then the explicit URL, then the legacy field."""
    for candidate in (creative.storage_url, creative.image_url, creative.imageurl):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def is_trusted_storage_url(url: str) -> bool:
    """True for images already in our own storage namespace."""
    if settings.storage_path_marker and settings.storage_path_marker in url:
        return True
    prefix = settings.storage_public_url
    return bool(prefix) and url.startswith(prefix)


async def probe_image_url(client: httpx.AsyncClient, url: str) -> None:
    """HEAD the URL; raise ``UnreachableImage`` unless it answers 2xx."""
    try:
        response = await client.head(url, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.warning(f"Image URL check failed for {url}: {e}")
        raise UnreachableImage(url) from e
    if not response.is_success:
        logger.warning(
            f"Image URL check failed for {url}",
            extra={"status_code": response.status_code},
        )
        raise UnreachableImage(url, response.status_code)


async def check_creative_images(
    creatives: Sequence[AdCreativeInput],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[str]:
    """Return the effective image URL of every creative, in order.

    Raises ``MissingImage`` or ``UnreachableImage`` on the first bad creative.
    """
    if not creatives:
        raise ValidationFailed("No ad details provided")

    resolved: List[str] = []
    async with httpx.AsyncClient(
        timeout=settings.image_probe_timeout_seconds, transport=transport
    ) as client:
        for creative in creatives:
            url = resolve_image_url(creative)
            if not url:
                raise MissingImage(creative.id)
            if is_trusted_storage_url(url):
                logger.debug(f"Using validated storage URL: {url}")
            else:
                await probe_image_url(client, url)
            resolved.append(url)
    return resolved


async def validate_ad_images(
    creatives: Sequence[AdCreativeInput],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ImageValidationResult:
    """Non-raising form of ``check_creative_images``."""
    try:
        await check_creative_images(creatives, transport=transport)
    except ValidationFailed as e:
        return ImageValidationResult(valid=False, message=e.message)
    return ImageValidationResult(valid=True)
