"""AdWizard — Campaign Request & Result Schemas."""

from datetime import date, datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

UNCAPPED_BID_STRATEGY = "LOWEST_COST_WITHOUT_CAP"


# ─────────────────────────────────────────────
# REQUEST — built by the wizard UI
# ─────────────────────────────────────────────


class Interest(BaseModel):
    id: str
    name: str


class TargetingLocation(BaseModel):
    """One geo-location entry, e.g. {"key": "countries", "value": ["US", "CA"]}."""

    key: str = "countries"
    value: List[str] = Field(default_factory=list)


class Targeting(BaseModel):
    """Audience targeting as entered in the campaign form."""

    age_min: Optional[int] = None
    age_max: Optional[int] = None
    genders: List[str] = Field(default_factory=list)
    """Any of "male", "female", "all". Empty means all genders."""
    gender: Optional[str] = None
    """Legacy single-value form ("MALE" | "FEMALE" | "ALL")."""
    locations: List[TargetingLocation] = Field(default_factory=list)
    interests: List[Union[str, Interest]] = Field(default_factory=list)


class FacebookAdSettings(BaseModel):
    """Per-creative landing settings chosen in the gallery."""

    website_url: Optional[str] = None
    visible_link: Optional[str] = None
    call_to_action: Optional[str] = None
    url_parameters: Optional[str] = None


class AdCreativeInput(BaseModel):
    """A saved ad creative selected for publishing.

    The image URL can arrive in three fields; see
    ``app.campaigns.validator.resolve_image_url`` for the priority order.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    headline: str = ""
    primary_text: str = ""
    storage_url: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    imageurl: Optional[str] = None
    call_to_action: Optional[str] = None
    fb_ad_settings: Optional[FacebookAdSettings] = None


class CampaignRequest(BaseModel):
    """Everything needed to publish one Facebook campaign."""

    name: str
    objective: str
    budget: float = Field(description="Daily budget")
    bid_strategy: str = UNCAPPED_BID_STRATEGY
    bid_amount: Optional[float] = None
    start_date: Union[datetime, date]
    end_date: Optional[Union[datetime, date]] = None
    targeting: Targeting = Field(default_factory=Targeting)
    ads: List[AdCreativeInput] = Field(default_factory=list)
    project_id: Optional[str] = None
    page_id: Optional[str] = None
    additional_notes: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Spring launch",
                    "objective": "traffic",
                    "budget": 25,
                    "bid_strategy": "LOWEST_COST_WITHOUT_CAP",
                    "start_date": "2024-03-05",
                    "targeting": {
                        "age_min": 25,
                        "age_max": 45,
                        "genders": ["female"],
                        "locations": [{"key": "countries", "value": ["US"]}],
                        "interests": ["Yoga"],
                    },
                    "ads": [
                        {
                            "id": "ad-1",
                            "headline": "Stretch smarter",
                            "primary_text": "Classes for every level.",
                            "storage_url": "https://xyz.supabase.co/storage/v1/object/public/ads/1.png",
                        }
                    ],
                }
            ]
        }
    }


# ─────────────────────────────────────────────
# RESULTS
# ─────────────────────────────────────────────


class ImageValidationResult(BaseModel):
    valid: bool
    message: Optional[str] = None


class PublishedAd(BaseModel):
    ad_id: str
    creative_id: str


class PublishResult(BaseModel):
    """Outcome of a successful publish."""

    campaign_id: str
    """Local record id."""
    external_id: str
    """Remote campaign id."""
    ad_set_id: str
    ads: List[str]


class CampaignRecordOut(BaseModel):
    """API view of a local campaign record."""

    id: str
    user_id: str
    project_id: Optional[str] = None
    platform: str
    name: str
    status: str
    external_id: Optional[str] = None
    ad_set_id: Optional[str] = None
    ads: List[PublishedAd] = Field(default_factory=list)
    error_message: Optional[str] = None
    remote_status: Optional[str] = None
    campaign_config: Dict = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class CampaignInsights(BaseModel):
    """Performance metrics for one remote campaign over a date range."""

    campaign_id: str
    campaign_name: str = ""
    date_start: str
    date_stop: str
    impressions: int = 0
    reach: int = 0
    clicks: int = 0
    spend: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    actions: Dict[str, float] = Field(default_factory=dict)
