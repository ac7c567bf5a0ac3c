"""AdWizard — Campaign Management.

Administrative calls outside the publish path: activating and pausing
delivery, editing or deleting a remote campaign, and listing what exists on
the ad account. The lifecycle ``status`` of a local record is never touched
here; only ``remote_status`` mirrors the last delivery change.
"""

from typing import Any, Dict, List

from app.campaigns.store import CampaignStore, platform_data
from app.connectors.meta.endpoints import FacebookAdsAPI
from app.core.errors import ValidationFailed
from app.core.logging import get_logger
from app.models.campaign_models import AdCampaign
from app.models.remote_models import AdAccount, OperationResult, RemoteCampaign

logger = get_logger("campaigns.management")

ACTIVE = "ACTIVE"
PAUSED = "PAUSED"
DELETED = "DELETED"
UPDATABLE_FIELDS = ("name", "objective", "status")


class CampaignManager:
    def __init__(self, api: FacebookAdsAPI, store: CampaignStore):
        self.api = api
        self.store = store

    async def set_delivery(self, record: AdCampaign, status: str) -> AdCampaign:
        """Set campaign and ad set to ACTIVE or PAUSED on Facebook."""
        if status not in (ACTIVE, PAUSED):
            raise ValidationFailed(f"Unsupported delivery status: {status}")
        if not record.external_id:
            raise ValidationFailed("Campaign has not been published to Facebook")

        await self.api.update_object(record.external_id, {"status": status})
        ad_set_id = platform_data(record).get("ad_set_id")
        if ad_set_id:
            await self.api.update_object(ad_set_id, {"status": status})

        logger.info(
            f"Campaign delivery set to {status}",
            extra={"record_id": record.id, "entity_id": record.external_id},
        )
        return self.store.set_remote_status(record, status)

    async def activate(self, record: AdCampaign) -> AdCampaign:
        return await self.set_delivery(record, ACTIVE)

    async def deactivate(self, record: AdCampaign) -> AdCampaign:
        return await self.set_delivery(record, PAUSED)

    async def update_campaign(
        self, external_id: str, changes: Dict[str, Any]
    ) -> OperationResult:
        fields = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        if not fields:
            raise ValidationFailed("Nothing to update")
        return await self.api.update_object(external_id, fields)

    async def delete_campaign(self, user_id: str, external_id: str) -> OperationResult:
        result = await self.api.delete_campaign(external_id)
        for record in self.store.find_by_external_id(user_id, external_id):
            self.store.set_remote_status(record, DELETED)
        logger.info("Remote campaign deleted", extra={"entity_id": external_id})
        return result

    async def sync_campaigns(self) -> List[RemoteCampaign]:
        return await self.api.get_campaigns()

    async def get_campaign(self, external_id: str) -> RemoteCampaign:
        return await self.api.get_campaign(external_id)

    async def list_ad_accounts(self) -> List[AdAccount]:
        return await self.api.get_ad_accounts()

    async def get_ad_account(self, ad_account_id: str) -> AdAccount:
        return await self.api.get_ad_account(ad_account_id)
