"""Match-type buckets, Auto sub-type breakdown and the match-type-mix flag."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .aggregate import (
    DetailRow,
    Summary,
    build_target_details,
    compute_summary,
    group_by,
)
from .keys import (
    CONTEXTUAL_TARGETING_ENTITY,
    DISPLAY_TARGET_ENTITIES,
    PRODUCT_TARGETING_ENTITY,
    SEARCH_TARGET_ENTITIES,
    campaign_key,
    target_key,
)
from .normalizer import NormalizedRow
from .targeting import AUTO_LABEL, UNMAPPED

CONTEXTUAL_LABEL = "Contextual targeting"
AUDIENCE_LABEL = "Audience targeting"


def display_targeting_label(entity_normalized: str) -> str:
    """SD classifies the entity itself, not a targeting expression."""
    if entity_normalized == CONTEXTUAL_TARGETING_ENTITY:
        return CONTEXTUAL_LABEL
    return AUDIENCE_LABEL


def is_negative_match_type(match_type: str) -> bool:
    return match_type.lower().startswith("negative")


def is_bucketable_search_target(row: NormalizedRow) -> bool:
    """Keyword / product-targeting rows; an unclassified "negative..." match type is skipped."""
    if row.entity_normalized not in SEARCH_TARGET_ENTITIES:
        return False
    if not row.match_type:
        return row.entity_normalized == PRODUCT_TARGETING_ENTITY
    return not is_negative_match_type(row.match_type)


@dataclass(frozen=True)
class AutoBreakdownRow:
    label: str
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "summary": self.summary.to_dict()}


def build_auto_breakdown(rows: Iterable[NormalizedRow]) -> tuple[AutoBreakdownRow, ...]:
    grouped = group_by((row for row in rows if row.auto_sub_type), lambda row: row.auto_sub_type)
    return tuple(
        AutoBreakdownRow(label=label, summary=compute_summary(items))
        for label, items in grouped.items()
    )


@dataclass(frozen=True)
class MatchTypeBucket:
    match_type: str
    target_count: int
    spend: float
    sales: float
    spend_pct: float | None
    sales_pct: float | None
    avg_cpc: float | None
    acos: float | None
    roas: float | None
    auto_breakdown: tuple[AutoBreakdownRow, ...] = ()
    details: tuple[DetailRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchType": self.match_type,
            "targetCount": self.target_count,
            "spend": self.spend,
            "sales": self.sales,
            "spendPct": self.spend_pct,
            "salesPct": self.sales_pct,
            "avgCpc": self.avg_cpc,
            "acos": self.acos,
            "roas": self.roas,
            "autoBreakdown": [row.to_dict() for row in self.auto_breakdown],
            "details": [detail.to_dict() for detail in self.details],
        }


def build_match_type_rows(
    grouped: dict[str, list[NormalizedRow]],
    share_totals: Summary | None = None,
) -> list[MatchTypeBucket]:
    summaries = {label: compute_summary(items) for label, items in grouped.items()}
    total_spend = sum(summary.spend for summary in summaries.values())
    total_sales = sum(summary.sales for summary in summaries.values())

    buckets = []
    for label, items in grouped.items():
        summary = summaries[label]
        buckets.append(
            MatchTypeBucket(
                match_type=label,
                target_count=len({target_key(item) for item in items}),
                spend=summary.spend,
                sales=summary.sales,
                spend_pct=summary.spend / total_spend if total_spend else None,
                sales_pct=summary.sales / total_sales if total_sales else None,
                avg_cpc=summary.cpc,
                acos=summary.acos,
                roas=summary.roas,
                auto_breakdown=build_auto_breakdown(items) if label == AUTO_LABEL else (),
                details=build_target_details(items, share_totals),
            )
        )
    return buckets


def bucket_by_match_type(
    rows: Sequence[NormalizedRow],
    ad_type: str,
    share_totals: Summary | None = None,
) -> list[MatchTypeBucket]:
    """Target-level rows only; campaign, ad group and bid-adjustment rows never contribute."""
    if ad_type == "SD":
        display_rows = [row for row in rows if row.entity_normalized in DISPLAY_TARGET_ENTITIES]
        grouped = group_by(display_rows, lambda row: display_targeting_label(row.entity_normalized))
        return build_match_type_rows(grouped, share_totals)

    grouped = group_by(
        [row for row in rows if is_bucketable_search_target(row)],
        lambda row: row.match_type or UNMAPPED,
    )
    return build_match_type_rows(grouped, share_totals)


@dataclass(frozen=True)
class MixedCampaign:
    campaign_key: str
    match_types: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"campaignKey": self.campaign_key, "matchTypes": list(self.match_types)}


@dataclass(frozen=True)
class MatchTypeMixFlag:
    count: int
    campaigns: tuple[MixedCampaign, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "campaigns": [campaign.to_dict() for campaign in self.campaigns]}


def detect_match_type_mix(rows: Iterable[NormalizedRow]) -> MatchTypeMixFlag:
    """Campaigns whose keyword / product-targeting rows span more than one match type."""
    by_campaign: dict[str, dict[str, None]] = {}
    for row in rows:
        if row.entity_normalized not in SEARCH_TARGET_ENTITIES:
            continue
        by_campaign.setdefault(campaign_key(row), {})[row.match_type or UNMAPPED] = None

    mixed = tuple(
        MixedCampaign(campaign_key=key, match_types=tuple(types))
        for key, types in by_campaign.items()
        if len(types) > 1
    )
    return MatchTypeMixFlag(count=len(mixed), campaigns=mixed)
