"""AdWizard — Facebook OAuth Redirect Flow.

Performed once per connection: the authorization code is exchanged for a
token, and the token plus account/page metadata is stored for publishing.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx

from app.campaigns.credentials import CredentialResolver, connection_metadata
from app.config import settings
from app.connectors.meta.client import FacebookClient
from app.connectors.meta.endpoints import FacebookAdsAPI, parse_result
from app.core.logging import get_logger
from app.models.connection_models import PlatformConnection
from app.models.remote_models import TokenExchangeResult

logger = get_logger("meta.oauth")


def new_state() -> str:
    return secrets.token_urlsafe(16)


def build_authorize_url(state: str) -> str:
    """URL of the Facebook login dialog for this app."""
    query = urlencode(
        {
            "client_id": settings.facebook_app_id,
            "redirect_uri": settings.facebook_redirect_uri,
            "state": state,
            "scope": settings.facebook_oauth_scopes,
            "response_type": "code",
        }
    )
    return (
        f"{settings.facebook_dialog_url}/{settings.facebook_api_version}"
        f"/dialog/oauth?{query}"
    )


async def exchange_code(client: FacebookClient, code: str) -> TokenExchangeResult:
    """Trade an authorization code for a user access token."""
    data = await client.get(
        "oauth/access_token",
        {
            "client_id": settings.facebook_app_id,
            "client_secret": settings.facebook_app_secret,
            "redirect_uri": settings.facebook_redirect_uri,
            "code": code,
        },
        authenticate=False,
        retry=False,
    )
    return parse_result(TokenExchangeResult, data, "exchange code for token")


async def connect_account(
    resolver: CredentialResolver,
    user_id: str,
    code: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PlatformConnection:
    """Complete the OAuth callback and store the user's connection."""
    async with FacebookClient(transport=transport) as client:
        token = await exchange_code(client, code)
        client.access_token = token.access_token
        api = FacebookAdsAPI(client)

        me = await api.get_me()
        ad_accounts = await api.get_ad_accounts()
        pages = await api.get_pages()

    expires_at = None
    if token.expires_in:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=token.expires_in)

    metadata = {
        "facebook_user_id": me.id,
        "ad_accounts": [a.model_dump(exclude_none=True) for a in ad_accounts],
        "pages": [p.model_dump(exclude_none=True) for p in pages],
    }
    account_id = None
    if ad_accounts:
        account_id = ad_accounts[0].account_id or ad_accounts[0].id

    logger.info(
        f"Facebook connected: {len(ad_accounts)} ad accounts, {len(pages)} pages",
        extra={"user_id": user_id},
    )
    # Reconnecting keeps the ad account and page the user already selected
    existing = resolver.get_connection(user_id)
    if existing is not None:
        account_id = existing.account_id or account_id
        selected = connection_metadata(existing).get("selected_page_id")
        if selected:
            metadata["selected_page_id"] = selected
    return resolver.save_connection(
        user_id,
        token.access_token,
        expires_at=expires_at,
        metadata=metadata,
        account_id=account_id,
    )


async def disconnect_account(
    resolver: CredentialResolver,
    user_id: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Revoke the app's permissions and forget the stored token."""
    connection = resolver.get_connection(user_id)
    if connection is None:
        return False
    async with FacebookClient(connection.access_token, transport=transport) as client:
        await FacebookAdsAPI(client).revoke_token()
    return resolver.delete_connection(user_id)
