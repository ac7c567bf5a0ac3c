"""AdWizard — Graph API Response Types.

Each remote call's response is validated against one of these models before
any field is used, so a malformed payload fails at the boundary.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class _GraphObject(BaseModel):
    model_config = ConfigDict(extra="allow")


class CreateCampaignResult(_GraphObject):
    id: str


class CreateAdSetResult(_GraphObject):
    id: str


class CreateAdCreativeResult(_GraphObject):
    id: str


class CreateAdResult(_GraphObject):
    id: str


class OperationResult(_GraphObject):
    """Graph answer to updates and deletes: {"success": true}."""

    success: bool = False


class RemoteCampaign(_GraphObject):
    id: str
    name: str = ""
    objective: Optional[str] = None
    status: Optional[str] = None


class AdAccount(_GraphObject):
    id: str
    account_id: Optional[str] = None
    name: Optional[str] = None
    account_status: Optional[int] = None


class FacebookPage(_GraphObject):
    id: str
    name: Optional[str] = None


class FacebookUser(_GraphObject):
    id: str
    name: Optional[str] = None


class TokenExchangeResult(_GraphObject):
    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class TokenDebugInfo(BaseModel):
    valid: bool = False
    expires_at: int = 0
    scopes: List[str] = Field(default_factory=list)
    app_id: str = ""


class InsightRow(_GraphObject):
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    date_start: Optional[str] = None
    date_stop: Optional[str] = None
    impressions: Optional[float] = None
    reach: Optional[float] = None
    clicks: Optional[float] = None
    spend: Optional[float] = None
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    actions: List[Dict[str, Any]] = Field(default_factory=list)
