"""AdWizard — Campaign Publishing & Management Routes."""

from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from app.api.deps import get_current_user_id, get_transport, http_error
from app.campaigns.credentials import CredentialResolver
from app.campaigns.insights import InsightsReader
from app.campaigns.management import CampaignManager
from app.campaigns.publisher import publish_campaign
from app.campaigns.store import CampaignStore, to_record_out
from app.campaigns.validator import validate_ad_images
from app.connectors.meta.client import FacebookAPIError, FacebookClient
from app.connectors.meta.endpoints import FacebookAdsAPI
from app.core.errors import AdWizardError
from app.core.logging import get_logger
from app.database import get_session
from app.models.campaign_models import AdCampaign
from app.models.campaign_schemas import (
    AdCreativeInput,
    CampaignInsights,
    CampaignRecordOut,
    CampaignRequest,
    ImageValidationResult,
    PublishResult,
)

logger = get_logger("api.campaigns")

router = APIRouter(prefix="/facebook", tags=["Campaigns"])


# ── Request / Response Models ──


class CheckImagesRequest(BaseModel):
    """Request body for POST /facebook/campaigns/check-images."""

    ads: List[AdCreativeInput]


class PublishResponse(BaseModel):
    status: str = "success"
    result: PublishResult


class UpdateCampaignRequest(BaseModel):
    """Request body for PATCH /facebook/remote-campaigns/{id}."""

    name: Optional[str] = None
    objective: Optional[str] = None
    status: Optional[str] = None


# ── Helpers ──


def _manager(
    session: Session, user_id: str, transport: Optional[httpx.AsyncBaseTransport]
) -> CampaignManager:
    credentials = CredentialResolver(session).resolve(user_id)
    client = FacebookClient(
        credentials.access_token, credentials.ad_account_id, transport=transport
    )
    return CampaignManager(FacebookAdsAPI(client), CampaignStore(session))


def _record_or_404(session: Session, record_id: str, user_id: str) -> AdCampaign:
    record = CampaignStore(session).get(record_id, user_id=user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return record


# ── Publishing ──


@router.post("/campaigns/check-images", response_model=ImageValidationResult)
async def check_images(
    request: CheckImagesRequest,
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Verify every creative has a usable image before publishing."""
    return await validate_ad_images(request.ads, transport=transport)


@router.post("/campaigns", response_model=PublishResponse)
async def create_campaign(
    request: CampaignRequest,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Publish a campaign to Facebook (all objects created paused)."""
    try:
        result = await publish_campaign(session, user_id, request, transport=transport)
    except AdWizardError as e:
        logger.error(f"Publish failed: {e}", extra={"user_id": user_id})
        raise http_error(e)
    return PublishResponse(result=result)


# ── Local Records ──


@router.get("/campaigns", response_model=List[CampaignRecordOut])
async def list_campaigns(
    project_id: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    """List the user's publish attempts, newest first."""
    records = CampaignStore(session).list_for_user(user_id, project_id=project_id)
    return [to_record_out(r) for r in records]


@router.get("/campaigns/{record_id}", response_model=CampaignRecordOut)
async def get_campaign_record(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    return to_record_out(_record_or_404(session, record_id, user_id))


@router.post("/campaigns/{record_id}/activate", response_model=CampaignRecordOut)
async def activate_campaign(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Start delivery of a published campaign and its ad set."""
    record = _record_or_404(session, record_id, user_id)
    try:
        manager = _manager(session, user_id, transport)
        async with manager.api.client:
            record = await manager.activate(record)
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return to_record_out(record)


@router.post("/campaigns/{record_id}/deactivate", response_model=CampaignRecordOut)
async def deactivate_campaign(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Pause delivery of a published campaign and its ad set."""
    record = _record_or_404(session, record_id, user_id)
    try:
        manager = _manager(session, user_id, transport)
        async with manager.api.client:
            record = await manager.deactivate(record)
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return to_record_out(record)


@router.get("/campaigns/{record_id}/insights", response_model=CampaignInsights)
async def campaign_insights(
    record_id: str,
    since: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    until: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    metrics: Optional[List[str]] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Performance metrics for a published campaign."""
    record = _record_or_404(session, record_id, user_id)
    if not record.external_id:
        raise HTTPException(
            status_code=400, detail="Campaign has not been published to Facebook"
        )
    try:
        credentials = CredentialResolver(session).resolve(user_id)
        async with FacebookClient(
            credentials.access_token, credentials.ad_account_id, transport=transport
        ) as client:
            reader = InsightsReader(FacebookAdsAPI(client))
            return await reader.get_campaign_insights(
                record.external_id, since, until, metrics
            )
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)


# ── Remote Campaigns ──


@router.get("/remote-campaigns")
async def sync_campaigns(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """List campaigns that exist on the connected ad account."""
    try:
        manager = _manager(session, user_id, transport)
        async with manager.api.client:
            campaigns = await manager.sync_campaigns()
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {
        "status": "success",
        "campaigns": [c.model_dump() for c in campaigns],
        "message": "Campaigns synced successfully",
    }


@router.get("/remote-campaigns/{external_id}")
async def get_remote_campaign(
    external_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    try:
        manager = _manager(session, user_id, transport)
        async with manager.api.client:
            campaign = await manager.get_campaign(external_id)
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {"status": "success", "campaign": campaign.model_dump()}


@router.patch("/remote-campaigns/{external_id}")
async def update_remote_campaign(
    external_id: str,
    request: UpdateCampaignRequest,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    try:
        manager = _manager(session, user_id, transport)
        async with manager.api.client:
            await manager.update_campaign(external_id, request.model_dump())
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {"status": "success", "message": "Campaign updated successfully"}


@router.delete("/remote-campaigns/{external_id}")
async def delete_remote_campaign(
    external_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Delete a campaign on Facebook. Local records are kept."""
    try:
        manager = _manager(session, user_id, transport)
        async with manager.api.client:
            await manager.delete_campaign(user_id, external_id)
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {"status": "success", "message": "Campaign deleted successfully"}
