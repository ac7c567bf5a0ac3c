"""AdWizard — Facebook Connection & Account Routes."""

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlmodel import Session

from app.api.deps import get_current_user_id, get_transport, http_error
from app.campaigns.credentials import (
    CredentialResolver,
    connection_metadata,
    default_page_id,
)
from app.campaigns.management import CampaignManager
from app.campaigns.store import CampaignStore
from app.connectors.meta.client import FacebookAPIError, FacebookClient
from app.connectors.meta.endpoints import FacebookAdsAPI
from app.connectors.meta.oauth import (
    build_authorize_url,
    connect_account,
    disconnect_account,
    new_state,
)
from app.core.errors import AdWizardError
from app.core.logging import get_logger
from app.database import get_session

logger = get_logger("api.meta")

router = APIRouter(prefix="/facebook", tags=["Facebook"])


class SelectAccountRequest(BaseModel):
    """Request body for PUT /facebook/connection."""

    account_id: Optional[str] = None
    page_id: Optional[str] = None


# ── OAuth ──


@router.get("/oauth/authorize")
async def authorize(
    redirect: bool = False,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    """Start the Facebook login flow; the issued state is checked on callback."""
    state = new_state()
    try:
        CredentialResolver(session).issue_state(user_id, state)
    except AdWizardError as e:
        raise http_error(e)
    url = build_authorize_url(state)
    if redirect:
        return RedirectResponse(url, status_code=302)
    return {"status": "success", "url": url, "state": state}


@router.get("/oauth/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_reason: Optional[str] = None,
    error_description: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Exchange the authorization code and store the connection."""
    if error or error_reason or error_description:
        logger.error(f"Facebook OAuth error: {error} {error_reason} {error_description}")
        raise HTTPException(
            status_code=400, detail=error_description or error_reason or error
        )
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    try:
        resolver = CredentialResolver(session)
        if not resolver.consume_state(user_id, state):
            logger.warning("Rejected OAuth callback with unknown state", extra={"user_id": user_id})
            raise HTTPException(status_code=400, detail="Invalid state parameter")
        connection = await connect_account(resolver, user_id, code, transport=transport)
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    metadata = connection_metadata(connection)
    return {
        "status": "success",
        "connected": True,
        "account_id": connection.account_id,
        "ad_accounts": metadata.get("ad_accounts", []),
        "pages": metadata.get("pages", []),
        "expires_at": connection.expires_at,
    }


# ── Connection ──


@router.get("/connection")
async def check_connection(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Report whether the stored token still works."""
    resolver = CredentialResolver(session)
    connection = resolver.get_connection(user_id)
    if connection is None or not connection.access_token:
        return {"status": "success", "connected": False, "message": "Not connected to Facebook"}

    async with FacebookClient(connection.access_token, transport=transport) as client:
        try:
            await FacebookAdsAPI(client).get_ad_accounts()
        except FacebookAPIError as e:
            logger.warning(f"Facebook connection check failed: {e}", extra={"user_id": user_id})
            return {"status": "success", "connected": False, "message": str(e)}

    return {
        "status": "success",
        "connected": True,
        "message": "Successfully connected to Facebook",
        "account_id": connection.account_id,
        "page_id": default_page_id(connection_metadata(connection)),
        "expires_at": connection.expires_at,
    }


@router.put("/connection")
async def select_account(
    request: SelectAccountRequest,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    """Choose the ad account and page used for publishing."""
    try:
        connection = CredentialResolver(session).select_account(
            user_id, request.account_id, request.page_id
        )
    except AdWizardError as e:
        raise http_error(e)
    return {
        "status": "success",
        "account_id": connection.account_id,
        "page_id": default_page_id(connection_metadata(connection)),
    }


@router.delete("/connection")
async def disconnect(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Revoke the token and forget the connection."""
    try:
        removed = await disconnect_account(
            CredentialResolver(session), user_id, transport=transport
        )
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {"status": "success", "disconnected": removed}


# ── Token & Accounts ──


@router.get("/validate-token")
async def validate_token(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Check if the stored access token is valid.

    Returns validity status, expiration, and granted scopes.
    """
    try:
        token = CredentialResolver(session).resolve_token(user_id)
        async with FacebookClient(token, transport=transport) as client:
            result = await FacebookAdsAPI(client).verify_token()
    except FacebookAPIError as e:
        raise HTTPException(status_code=400, detail=f"Token validation failed: {str(e)}")
    except AdWizardError as e:
        raise http_error(e)
    return {"status": "success", **result.model_dump()}


@router.get("/ad-accounts")
async def list_ad_accounts(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Ad accounts the connected user can manage."""
    try:
        token = CredentialResolver(session).resolve_token(user_id)
        async with FacebookClient(token, transport=transport) as client:
            manager = CampaignManager(FacebookAdsAPI(client), CampaignStore(session))
            accounts = await manager.list_ad_accounts()
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {"status": "success", "ad_accounts": [a.model_dump() for a in accounts]}


@router.get("/ad-accounts/{ad_account_id}")
async def get_ad_account(
    ad_account_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Fetch one ad account's details."""
    try:
        token = CredentialResolver(session).resolve_token(user_id)
        async with FacebookClient(token, transport=transport) as client:
            manager = CampaignManager(FacebookAdsAPI(client), CampaignStore(session))
            account = await manager.get_ad_account(ad_account_id)
    except (AdWizardError, FacebookAPIError) as e:
        raise http_error(e)
    return {"status": "success", "ad_account": account.model_dump()}
