"""AdWizard — Graph API Endpoints.

One method per Graph resource call. Every response is validated into a typed
result before it is returned.
"""

import json
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.connectors.meta.client import FacebookClient, FacebookAPIError
from app.core.logging import get_logger
from app.models.remote_models import (
    AdAccount,
    CreateAdCreativeResult,
    CreateAdResult,
    CreateAdSetResult,
    CreateCampaignResult,
    FacebookPage,
    FacebookUser,
    OperationResult,
    RemoteCampaign,
    TokenDebugInfo,
)

logger = get_logger("meta.endpoints")

CAMPAIGN_FIELDS = "id,name,objective,status"
AD_ACCOUNT_FIELDS = "name,account_id,account_status"

ResultT = TypeVar("ResultT", bound=BaseModel)


def parse_result(model: Type[ResultT], payload: Dict[str, Any], what: str) -> ResultT:
    """Validate a Graph response against its expected shape."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Unexpected Graph response for {what}: {payload}")
        raise FacebookAPIError(f"Unexpected response while trying to {what}") from e


class FacebookAdsAPI:
    """Typed Graph API calls for one ad account."""

    def __init__(self, client: FacebookClient):
        self.client = client

    @property
    def account(self) -> str:
        return self.client.account_path

    # ── Campaign Publishing (never retried) ──

    async def create_campaign(self, payload: Dict[str, Any]) -> CreateCampaignResult:
        data = await self.client.post(f"{self.account}/campaigns", payload)
        return parse_result(CreateCampaignResult, data, "create campaign")

    async def create_ad_set(self, payload: Dict[str, Any]) -> CreateAdSetResult:
        data = await self.client.post(f"{self.account}/adsets", payload)
        return parse_result(CreateAdSetResult, data, "create ad set")

    async def create_ad_creative(self, payload: Dict[str, Any]) -> CreateAdCreativeResult:
        data = await self.client.post(f"{self.account}/adcreatives", payload)
        return parse_result(CreateAdCreativeResult, data, "create ad creative")

    async def create_ad(self, payload: Dict[str, Any]) -> CreateAdResult:
        data = await self.client.post(f"{self.account}/ads", payload)
        return parse_result(CreateAdResult, data, "create ad")

    # ── Campaign Management ──

    async def update_object(self, object_id: str, fields: Dict[str, Any]) -> OperationResult:
        """Update a campaign or ad set (name, objective, status...)."""
        data = await self.client.post(object_id, fields)
        return parse_result(OperationResult, data, f"update {object_id}")

    async def delete_campaign(self, campaign_id: str) -> OperationResult:
        data = await self.client.delete(campaign_id)
        return parse_result(OperationResult, data, f"delete campaign {campaign_id}")

    async def get_campaigns(self) -> List[RemoteCampaign]:
        rows = await self.client.paginated_get(
            f"{self.account}/campaigns", {"fields": CAMPAIGN_FIELDS, "limit": 100}
        )
        return [parse_result(RemoteCampaign, row, "list campaigns") for row in rows]

    async def get_campaign(self, campaign_id: str) -> RemoteCampaign:
        data = await self.client.get(campaign_id, {"fields": CAMPAIGN_FIELDS})
        return parse_result(RemoteCampaign, data, f"get campaign {campaign_id}")

    # ── Insights (single attempt) ──

    async def get_insights(
        self, campaign_id: str, since: str, until: str, fields: List[str]
    ) -> List[Dict[str, Any]]:
        params = {
            "fields": ",".join(["campaign_id", "campaign_name", *fields]),
            "time_range": json.dumps({"since": since, "until": until}),
            "level": "campaign",
        }
        data = await self.client.get(f"{campaign_id}/insights", params, retry=False)
        return data.get("data", [])

    # ── Accounts & Identity ──

    async def get_ad_accounts(self) -> List[AdAccount]:
        rows = await self.client.paginated_get(
            "me/adaccounts", {"fields": AD_ACCOUNT_FIELDS}
        )
        return [parse_result(AdAccount, row, "list ad accounts") for row in rows]

    async def get_ad_account(self, ad_account_id: str) -> AdAccount:
        data = await self.client.get(ad_account_id, {"fields": AD_ACCOUNT_FIELDS})
        return parse_result(AdAccount, data, f"get ad account {ad_account_id}")

    async def get_pages(self) -> List[FacebookPage]:
        rows = await self.client.paginated_get("me/accounts", {"fields": "id,name"})
        return [parse_result(FacebookPage, row, "list pages") for row in rows]

    async def get_me(self) -> FacebookUser:
        data = await self.client.get("me", {"fields": "id,name"})
        return parse_result(FacebookUser, data, "fetch Facebook user")

    async def verify_token(self) -> TokenDebugInfo:
        """Check if the access token is valid and return metadata."""
        data = await self.client.get(
            "debug_token", {"input_token": self.client.access_token}
        )
        token_data = data.get("data", {})
        return TokenDebugInfo(
            valid=token_data.get("is_valid", False),
            expires_at=token_data.get("expires_at", 0),
            scopes=token_data.get("scopes", []),
            app_id=str(token_data.get("app_id", "")),
        )

    async def revoke_token(self) -> OperationResult:
        data = await self.client.delete("me/permissions")
        return parse_result(OperationResult, data, "revoke token")
