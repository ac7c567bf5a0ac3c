"""AdWizard — Campaign Insight Metric Registry.

Defines the insight fields requested from the Graph API and how each one is
reshaped for the campaign performance view.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # Raw counts: impressions, clicks, reach
    COST = "cost"  # Monetary: spend
    RATE = "rate"  # Pre-computed rates from source: ctr, cpc
    ACTION = "action"  # Per-action-type breakdown


@dataclass(frozen=True)
class MetricDefinition:
    """One Graph insight field and how it aggregates."""

    name: str
    metric_type: MetricType
    unit: str = ""
    description: str = ""


INSIGHT_METRICS: Dict[str, MetricDefinition] = {
    "impressions": MetricDefinition(
        "impressions", MetricType.VOLUME, "count", "Number of times ad was shown"
    ),
    "reach": MetricDefinition(
        "reach", MetricType.VOLUME, "count", "Unique users who saw ad"
    ),
    "clicks": MetricDefinition("clicks", MetricType.VOLUME, "count", "Total clicks"),
    "spend": MetricDefinition(
        "spend", MetricType.COST, "currency", "Total amount spent"
    ),
    "ctr": MetricDefinition("ctr", MetricType.RATE, "percent", "Click-through rate"),
    "cpc": MetricDefinition("cpc", MetricType.RATE, "currency", "Cost per click"),
    "actions": MetricDefinition(
        "actions", MetricType.ACTION, "count", "Conversions and engagement by action type"
    ),
}

# Additive metrics, summed across insight rows
DIRECT_METRICS = tuple(
    name
    for name, metric in INSIGHT_METRICS.items()
    if metric.metric_type in (MetricType.VOLUME, MetricType.COST)
)

DEFAULT_INSIGHT_FIELDS: List[str] = list(INSIGHT_METRICS)

# Graph action types folded into a friendlier key
ACTION_TYPE_ALIASES: Dict[str, str] = {
    "link_click": "link_clicks",
    "offsite_conversion.fb_pixel_purchase": "purchase",
    "offsite_conversion.fb_pixel_lead": "lead",
    "onsite_conversion.lead_grouped": "lead",
    "post": "shares",
    "like": "likes",
    "comment": "comments",
}


def resolve_fields(requested: List[str] | None) -> List[str]:
    """Return the Graph insight fields to request, dropping unknown names."""
    if not requested:
        return DEFAULT_INSIGHT_FIELDS
    return [name for name in requested if name in INSIGHT_METRICS]
