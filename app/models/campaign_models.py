"""AdWizard — Local Campaign Records.

One row per publish attempt. The row is the durable account of what the user
asked for and what happened on Facebook, independent of the remote state.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class CampaignStatus(str, Enum):
    """Lifecycle of a publish attempt."""

    DRAFT = "draft"
    ACTIVE = "active"
    FAILED = "failed"


class AdCampaign(SQLModel, table=True):
    """A user's campaign intent and its publishing outcome."""

    __tablename__ = "ad_campaigns"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36
    )
    user_id: str = Field(index=True, description="Owning user")
    project_id: Optional[str] = Field(default=None, index=True)
    platform: str = Field(default="facebook", description="Ads platform tag")
    name: str
    campaign_config_json: str = Field(description="Original request, kept for audit/replay")
    status: CampaignStatus = Field(default=CampaignStatus.DRAFT, index=True)
    external_id: Optional[str] = Field(
        default=None, index=True, description="Remote campaign id"
    )
    platform_data_json: Optional[str] = Field(
        default=None, description="Ad set id and {ad_id, creative_id} pairs"
    )
    error_message: Optional[str] = None
    remote_status: Optional[str] = Field(
        default=None, description="Last delivery status set through management calls"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
