"""AdWizard — Campaign Status & Insights Reader.

Read-only: nothing here writes to the local campaign record. Remote failures
are surfaced as-is; there is no retry and no caching.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from app.connectors.meta.endpoints import FacebookAdsAPI
from app.connectors.meta.transformer import transform_insights
from app.core.metric_registry import resolve_fields
from app.core.logging import get_logger
from app.models.campaign_schemas import CampaignInsights
from app.models.remote_models import RemoteCampaign

logger = get_logger("campaigns.insights")

DEFAULT_LOOKBACK_DAYS = 30


def resolve_date_range(
    since: Optional[str] = None, until: Optional[str] = None
) -> Tuple[str, str]:
    """Fill in a missing bound: last 30 days ending today (UTC)."""
    today = datetime.now(timezone.utc).date()
    since = since or (today - timedelta(days=DEFAULT_LOOKBACK_DAYS)).isoformat()
    until = until or today.isoformat()
    return since, until


class InsightsReader:
    def __init__(self, api: FacebookAdsAPI):
        self.api = api

    async def get_campaign_insights(
        self,
        external_id: str,
        since: Optional[str] = None,
        until: Optional[str] = None,
        metrics: Optional[List[str]] = None,
    ) -> CampaignInsights:
        since, until = resolve_date_range(since, until)
        rows = await self.api.get_insights(
            external_id, since, until, resolve_fields(metrics)
        )
        logger.info(
            f"Fetched {len(rows)} insight rows for {since}..{until}",
            extra={"entity_id": external_id},
        )
        return transform_insights(rows, external_id, since, until)

    async def get_campaign_status(self, external_id: str) -> RemoteCampaign:
        return await self.api.get_campaign(external_id)
