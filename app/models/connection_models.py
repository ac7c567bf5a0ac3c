"""AdWizard — Platform Connection (Credential) Records."""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class PlatformConnection(SQLModel, table=True):
    """Stored third-party credential for a user.

    Unique on (user_id, platform): reconnecting overwrites the previous token.
    """

    __tablename__ = "platform_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", name="uq_platform_connection"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    platform: str = Field(default="facebook", index=True)
    access_token: str = Field(default="")
    account_id: Optional[str] = Field(default=None, description="Ad account id")
    expires_at: Optional[datetime] = None
    metadata_json: str = Field(
        default="{}", description="facebook_user_id, ad_accounts, pages, selected_page_id"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OAuthState(SQLModel, table=True):
    """Login-dialog ``state`` issued to a user; consumed by the callback."""

    __tablename__ = "oauth_states"

    state: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(index=True)
    expires_at: datetime
