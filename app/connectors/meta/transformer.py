"""AdWizard — Local ⇄ Graph API Transformer.

Translates wizard campaign requests into Graph API payloads, and Graph
insight rows back into the flat ``CampaignInsights`` shape.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

from app.config import settings
from app.core.metric_registry import DIRECT_METRICS, ACTION_TYPE_ALIASES
from app.core.logging import get_logger
from app.models.campaign_schemas import (
    AdCreativeInput,
    CampaignInsights,
    CampaignRequest,
    Interest,
    Targeting,
    UNCAPPED_BID_STRATEGY,
)
from app.models.remote_models import InsightRow

logger = get_logger("meta.transformer")

PAUSED = "PAUSED"
DEFAULT_AGE_MIN = 18
DEFAULT_AGE_MAX = 65
DEFAULT_GEO = {"countries": ["US"]}
DEFAULT_CALL_TO_ACTION = "LEARN_MORE"

GENDER_CODES = {"male": 1, "female": 2}

# Friendly objective names used by the wizard → Graph campaign objectives
OBJECTIVE_MAP = {
    "awareness": "BRAND_AWARENESS",
    "brand awareness": "BRAND_AWARENESS",
    "reach": "REACH",
    "traffic": "TRAFFIC",
    "engagement": "POST_ENGAGEMENT",
    "app installs": "APP_INSTALLS",
    "app_installs": "APP_INSTALLS",
    "lead generation": "LEAD_GENERATION",
    "leads": "LEAD_GENERATION",
    "conversions": "CONVERSIONS",
    "sales": "PRODUCT_CATALOG_SALES",
    "catalog sales": "PRODUCT_CATALOG_SALES",
    "store traffic": "STORE_VISITS",
}
DEFAULT_OBJECTIVE = "REACH"

# Graph objective → (optimization_goal, billing_event)
OPTIMIZATION_MAP = {
    "BRAND_AWARENESS": ("BRAND_AWARENESS", "IMPRESSIONS"),
    "TRAFFIC": ("LINK_CLICKS", "LINK_CLICKS"),
    "POST_ENGAGEMENT": ("POST_ENGAGEMENT", "POST_ENGAGEMENT"),
    "CONVERSIONS": ("OFFSITE_CONVERSIONS", "IMPRESSIONS"),
    "LEAD_GENERATION": ("LEAD_GENERATION", "IMPRESSIONS"),
}
DEFAULT_OPTIMIZATION = ("REACH", "IMPRESSIONS")

CALL_TO_ACTION_MAP = {
    "learn more": "LEARN_MORE",
    "shop now": "SHOP_NOW",
    "sign up": "SIGN_UP",
    "book now": "BOOK_NOW",
    "contact us": "CONTACT_US",
    "subscribe": "SUBSCRIBE",
    "apply now": "APPLY_NOW",
    "download": "DOWNLOAD",
    "watch more": "WATCH_MORE",
    "get offer": "GET_OFFER",
}


# ── Numbers & Dates ──


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def to_daily_budget(budget: float) -> int:
    """Daily budget as the whole number the Graph API accepts."""
    return round_half_up(budget)


def to_bid_amount(bid_amount: Optional[float], bid_strategy: str) -> Optional[int]:
    """Bid in cents, or None when the strategy is uncapped or no bid is set."""
    if bid_strategy.upper() == UNCAPPED_BID_STRATEGY:
        return None
    if not bid_amount or bid_amount <= 0:
        return None
    return round_half_up(bid_amount * 100)


def format_date(value: Optional[Union[datetime, date]]) -> Optional[str]:
    """Serialize to YYYY-MM-DD (UTC date for aware datetimes); None passes through."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    return value.isoformat()


# ── Objective ──


def map_objective(objective: str) -> str:
    """Map a wizard objective label to a Graph objective."""
    key = (objective or "").strip()
    # Graph constants (e.g. "OUTCOME_TRAFFIC") pass through untouched
    if key and key.upper() == key:
        return key
    return OBJECTIVE_MAP.get(key.lower(), DEFAULT_OBJECTIVE)


def optimization_for(objective: str) -> Tuple[str, str]:
    """Return (optimization_goal, billing_event) for a Graph objective."""
    return OPTIMIZATION_MAP.get(objective, DEFAULT_OPTIMIZATION)


# ── Targeting ──


def _gender_codes(targeting: Targeting) -> List[int]:
    labels = [g.lower() for g in targeting.genders]
    if targeting.gender:
        labels.append(targeting.gender.lower())
    if not labels or "all" in labels:
        return []
    codes = {GENDER_CODES[label] for label in labels if label in GENDER_CODES}
    # Both genders selected is the same as no filter
    if codes == set(GENDER_CODES.values()):
        return []
    return sorted(codes)


def _interests(targeting: Targeting) -> List[Dict[str, str]]:
    result = []
    for interest in targeting.interests:
        if isinstance(interest, Interest):
            result.append({"id": interest.id, "name": interest.name})
        else:
            result.append({"id": interest, "name": interest})
    return result


def _geo_locations(targeting: Targeting) -> Dict[str, List[str]]:
    if not targeting.locations:
        return {key: list(values) for key, values in DEFAULT_GEO.items()}
    key = targeting.locations[0].key
    values: List[str] = []
    for location in targeting.locations:
        if location.key != key:
            logger.warning(
                f"Ignoring '{location.key}' location; geo targeting is keyed by '{key}'"
            )
            continue
        values.extend(v for v in location.value if v not in values)
    return {key: values}


def build_targeting(targeting: Optional[Targeting]) -> Dict[str, Any]:
    """Translate wizard targeting into the Graph ``targeting`` spec."""
    targeting = targeting or Targeting()
    spec: Dict[str, Any] = {
        "age_min": targeting.age_min if targeting.age_min is not None else DEFAULT_AGE_MIN,
        "age_max": targeting.age_max if targeting.age_max is not None else DEFAULT_AGE_MAX,
        "genders": _gender_codes(targeting),
        "geo_locations": _geo_locations(targeting),
    }
    interests = _interests(targeting)
    if interests:
        spec["interests"] = interests
    return spec


# ── Payloads ──


def build_campaign_payload(request: CampaignRequest) -> Dict[str, Any]:
    return {
        "name": request.name,
        "objective": map_objective(request.objective),
        "status": PAUSED,
        "buying_type": "AUCTION",
        "special_ad_categories": [],
    }


def build_ad_set_payload(request: CampaignRequest, campaign_id: str) -> Dict[str, Any]:
    objective = map_objective(request.objective)
    optimization_goal, billing_event = optimization_for(objective)
    bid_strategy = (request.bid_strategy or UNCAPPED_BID_STRATEGY).upper()

    payload: Dict[str, Any] = {
        "name": f"{request.name} Ad Set",
        "campaign_id": campaign_id,
        "status": PAUSED,
        "optimization_goal": optimization_goal,
        "billing_event": billing_event,
        "bid_strategy": bid_strategy,
        "daily_budget": to_daily_budget(request.budget),
        "targeting": build_targeting(request.targeting),
        "start_time": format_date(request.start_date),
        "end_time": format_date(request.end_date),
    }
    bid_amount = to_bid_amount(request.bid_amount, bid_strategy)
    if bid_amount is not None:
        payload["bid_amount"] = bid_amount
    return payload


def map_call_to_action(label: Optional[str]) -> str:
    if not label:
        return DEFAULT_CALL_TO_ACTION
    normalized = label.strip()
    if normalized.upper() in CALL_TO_ACTION_MAP.values():
        return normalized.upper()
    return CALL_TO_ACTION_MAP.get(normalized.lower(), DEFAULT_CALL_TO_ACTION)


def _landing_link(creative: AdCreativeInput) -> str:
    fb = creative.fb_ad_settings
    if not fb or not fb.website_url:
        return settings.default_landing_url
    link = fb.website_url
    if fb.url_parameters:
        separator = "&" if "?" in link else "?"
        link = f"{link}{separator}{fb.url_parameters.lstrip('?&')}"
    return link


def build_creative_payload(
    creative: AdCreativeInput, image_url: str, page_id: Optional[str]
) -> Dict[str, Any]:
    """Ad creative payload: headline, body, image and call-to-action."""
    link = _landing_link(creative)
    fb = creative.fb_ad_settings
    cta = map_call_to_action((fb.call_to_action if fb else None) or creative.call_to_action)

    link_data: Dict[str, Any] = {
        "link": link,
        "message": creative.primary_text,
        "name": creative.headline,
        "image_url": image_url,
        "call_to_action": {"type": cta, "value": {"link": link}},
    }
    if fb and fb.visible_link:
        link_data["caption"] = fb.visible_link
    else:
        link_data["caption"] = urlparse(link).netloc or link

    return {
        "name": f"Creative for {creative.headline or creative.id}",
        "object_story_spec": {"page_id": page_id, "link_data": link_data},
    }


def build_ad_payload(
    creative: AdCreativeInput, ad_set_id: str, creative_id: str
) -> Dict[str, Any]:
    return {
        "name": f"{creative.headline or creative.id} Ad",
        "adset_id": ad_set_id,
        "creative": {"creative_id": creative_id},
        "status": PAUSED,
    }


# ── Insights ──


def _safe_float(value: Any) -> float:
    """Safely convert a value to float."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _action_breakdown(actions: List[Dict[str, Any]]) -> Dict[str, float]:
    breakdown: Dict[str, float] = {}
    for action in actions or []:
        action_type = action.get("action_type", "")
        if not action_type:
            continue
        key = ACTION_TYPE_ALIASES.get(action_type, action_type)
        breakdown[key] = breakdown.get(key, 0.0) + _safe_float(action.get("value"))
    return breakdown


def transform_insights(
    rows: List[Dict[str, Any]], campaign_id: str, since: str, until: str
) -> CampaignInsights:
    """Collapse Graph insight rows into one ``CampaignInsights``.

    Counters and spend are summed across rows; ctr and cpc are recomputed
    from the totals when more than one row is returned.
    """
    parsed = [InsightRow.model_validate(row) for row in rows]
    totals: Dict[str, float] = {name: 0.0 for name in DIRECT_METRICS}
    actions: Dict[str, float] = {}
    name = ""

    for row in parsed:
        name = name or (row.campaign_name or "")
        for metric in DIRECT_METRICS:
            totals[metric] += _safe_float(getattr(row, metric))
        for key, value in _action_breakdown(row.actions).items():
            actions[key] = actions.get(key, 0.0) + value

    if len(parsed) == 1:
        ctr = _safe_float(parsed[0].ctr)
        cpc = _safe_float(parsed[0].cpc)
    else:
        ctr = (totals["clicks"] / totals["impressions"] * 100) if totals["impressions"] else 0.0
        cpc = (totals["spend"] / totals["clicks"]) if totals["clicks"] else 0.0

    return CampaignInsights(
        campaign_id=campaign_id,
        campaign_name=name,
        date_start=(parsed[0].date_start or since) if parsed else since,
        date_stop=(parsed[-1].date_stop or until) if parsed else until,
        impressions=int(totals["impressions"]),
        reach=int(totals["reach"]),
        clicks=int(totals["clicks"]),
        spend=round(totals["spend"], 2),
        ctr=round(ctr, 4),
        cpc=round(cpc, 4),
        actions=actions,
    )
