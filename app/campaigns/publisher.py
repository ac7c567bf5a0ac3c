"""AdWizard — Facebook Campaign Publisher.

Runs the publish workflow for one campaign request:

  resolve credentials → validate images → record draft →
  campaign → ad set → (creative → ad) per creative → record outcome

Steps are strictly sequential; each remote call needs the id returned by the
previous one. Every remote object is created PAUSED. Nothing is rolled back
on failure: orphaned objects stay paused and their ids are kept on the
failed record.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import httpx
from sqlmodel import Session

from app.campaigns.credentials import CredentialResolver, FacebookCredentials
from app.campaigns.store import CampaignStore
from app.campaigns.validator import check_creative_images
from app.connectors.meta.client import FacebookAPIError, FacebookClient
from app.connectors.meta.endpoints import FacebookAdsAPI
from app.connectors.meta.transformer import (
    build_ad_payload,
    build_ad_set_payload,
    build_campaign_payload,
    build_creative_payload,
)
from app.core.errors import PersistenceError, RemotePublishError
from app.core.logging import get_logger
from app.models.campaign_models import AdCampaign
from app.models.campaign_schemas import (
    AdCreativeInput,
    CampaignRequest,
    PublishedAd,
    PublishResult,
)

logger = get_logger("campaigns.publisher")


@dataclass
class _CreativeOutcome:
    published: List[PublishedAd] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)


class CampaignPublisher:
    """Turns a ``CampaignRequest`` into a paused Facebook campaign."""

    def __init__(self, api: FacebookAdsAPI, store: CampaignStore):
        self.api = api
        self.store = store

    async def _publish_creatives(
        self,
        creatives: List[AdCreativeInput],
        image_urls: List[str],
        ad_set_id: str,
        page_id: Optional[str],
    ) -> _CreativeOutcome:
        """Create creative + ad for each input; every creative is attempted."""
        outcome = _CreativeOutcome()
        for creative, image_url in zip(creatives, image_urls):
            try:
                created = await self.api.create_ad_creative(
                    build_creative_payload(creative, image_url, page_id)
                )
                ad = await self.api.create_ad(
                    build_ad_payload(creative, ad_set_id, created.id)
                )
            except FacebookAPIError as e:
                logger.error(
                    f"Error creating ad for creative {creative.id}: {e}",
                    extra={"entity_id": creative.id},
                )
                outcome.failures.append(f"{creative.id}: {e}")
                continue
            outcome.published.append(PublishedAd(ad_id=ad.id, creative_id=creative.id))
        return outcome

    async def publish(
        self,
        user_id: str,
        request: CampaignRequest,
        credentials: FacebookCredentials,
        image_urls: List[str],
    ) -> PublishResult:
        """Record a draft, create the remote objects, record the outcome.

        ``image_urls`` are the already-validated effective URLs, one per
        creative in ``request.ads``.
        """
        record = self.store.create_draft(user_id, request)
        record_id = record.id
        log_extra = {"record_id": record_id, "user_id": user_id}

        external_id: Optional[str] = None
        ad_set_id: Optional[str] = None
        try:
            campaign = await self.api.create_campaign(build_campaign_payload(request))
            external_id = campaign.id
            logger.info(f"Facebook campaign created: {external_id}", extra=log_extra)

            ad_set = await self.api.create_ad_set(
                build_ad_set_payload(request, external_id)
            )
            ad_set_id = ad_set.id
            logger.info(f"Ad set created: {ad_set_id}", extra=log_extra)
        except FacebookAPIError as e:
            self._fail(record, str(e), external_id, ad_set_id)
            raise RemotePublishError(str(e), record_id=record_id) from e

        outcome = await self._publish_creatives(
            request.ads, image_urls, ad_set_id, credentials.page_id
        )
        if outcome.failures:
            message = "Failed to create ads for creatives: " + "; ".join(outcome.failures)
            self._fail(record, message, external_id, ad_set_id, outcome.published)
            raise RemotePublishError(message, record_id=record_id)

        self.store.mark_active(record, external_id, ad_set_id, outcome.published)
        logger.info(
            f"Campaign published with {len(outcome.published)} ads", extra=log_extra
        )
        return PublishResult(
            campaign_id=record_id,
            external_id=external_id,
            ad_set_id=ad_set_id,
            ads=[ad.ad_id for ad in outcome.published],
        )

    def _fail(
        self,
        record: AdCampaign,
        message: str,
        external_id: Optional[str],
        ad_set_id: Optional[str],
        ads: Optional[List[PublishedAd]] = None,
    ) -> None:
        """Record the failure. Storage errors are logged, never raised."""
        record_id = record.id
        logger.error(
            f"Publishing failed: {message}",
            extra={"record_id": record_id, "entity_id": external_id},
        )
        try:
            self.store.mark_failed(record, message, external_id, ad_set_id, ads)
        except PersistenceError as e:
            logger.error(
                f"Could not record publish failure: {e}",
                extra={"record_id": record_id, "entity_id": external_id},
            )


async def publish_campaign(
    session: Session,
    user_id: str,
    request: CampaignRequest,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PublishResult:
    """Full publish entry point used by the API layer.

    Raises ``NotConnected``, ``ValidationFailed``, ``PersistenceError`` or
    ``RemotePublishError``; no remote call happens before the first two pass.
    """
    credentials = CredentialResolver(session).resolve(user_id, page_id=request.page_id)
    image_urls = await check_creative_images(request.ads, transport=transport)

    client = FacebookClient(
        credentials.access_token, credentials.ad_account_id, transport=transport
    )
    async with client:
        publisher = CampaignPublisher(FacebookAdsAPI(client), CampaignStore(session))
        return await publisher.publish(user_id, request, credentials, image_urls)
