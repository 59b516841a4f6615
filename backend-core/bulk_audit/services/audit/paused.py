"""Paused/enabled status resolution across campaign -> ad group -> target."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from .aggregate import (
    DetailRow,
    Summary,
    aggregate_entities,
    build_detail_rows_with_fallback,
    campaign_label,
    compute_summary,
    target_label,
)
from .keys import (
    AD_GROUP_ENTITY,
    CAMPAIGN_ENTITY,
    AdGroupKey,
    CampaignKey,
    TargetKey,
    ad_group_key,
    campaign_key,
    is_target_entity,
    target_key,
)
from .normalizer import NormalizedRow, normalize_value
from .targeting import UNMAPPED


def is_paused(value: str) -> bool:
    """Blank or anything without "paused" in it counts as enabled."""
    return "paused" in normalize_value(value)


def ad_group_status(row: NormalizedRow, ad_type: str) -> str:
    """SB exports carry ad-group status in the serving-status column; SP/SD in the state column."""
    if ad_type == "SB":
        return row.ad_group_serving_status_info
    return row.ad_group_state_info


def is_paused_campaign_row(row: NormalizedRow) -> bool:
    return row.entity_normalized == CAMPAIGN_ENTITY and is_paused(row.campaign_state_info)


def is_paused_ad_group_row(row: NormalizedRow, ad_type: str) -> bool:
    return row.entity_normalized == AD_GROUP_ENTITY and is_paused(ad_group_status(row, ad_type))


def is_paused_target_row(row: NormalizedRow, ad_type: str) -> bool:
    return is_target_entity(ad_type, row.entity_normalized) and is_paused(row.state)


@dataclass(frozen=True)
class PausedIndex:
    paused_campaigns: frozenset[CampaignKey] = frozenset()
    paused_ad_groups: frozenset[AdGroupKey] = frozenset()
    paused_targets: frozenset[TargetKey] = frozenset()

    def is_excluded(self, row: NormalizedRow, ad_type: str) -> bool:
        """A row is out if its campaign, its ad group or (for targets) itself is paused."""
        if campaign_key(row) in self.paused_campaigns:
            return True
        if ad_group_key(row) in self.paused_ad_groups:
            return True
        return is_target_entity(ad_type, row.entity_normalized) and target_key(row) in self.paused_targets

    def to_dict(self) -> dict[str, Any]:
        return {
            "pausedCampaigns": sorted(self.paused_campaigns),
            "pausedAdGroups": sorted(self.paused_ad_groups),
            "pausedTargets": sorted(self.paused_targets),
        }


def build_paused_index(rows: Iterable[NormalizedRow], ad_type: str) -> PausedIndex:
    campaigns: set[CampaignKey] = set()
    ad_groups: set[AdGroupKey] = set()
    targets: set[TargetKey] = set()

    for row in rows:
        if is_paused_campaign_row(row):
            campaigns.add(campaign_key(row))
        if is_paused_ad_group_row(row, ad_type):
            ad_groups.add(ad_group_key(row))
        if is_paused_target_row(row, ad_type):
            targets.add(target_key(row))

    return PausedIndex(frozenset(campaigns), frozenset(ad_groups), frozenset(targets))


def filter_enabled(
    rows: Iterable[NormalizedRow],
    index: PausedIndex,
    ad_type: str,
) -> list[NormalizedRow]:
    return [row for row in rows if not index.is_excluded(row, ad_type)]


@dataclass(frozen=True)
class PausedLevel:
    count: int
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "summary": self.summary.to_dict()}


@dataclass(frozen=True)
class PausedDetails:
    campaigns: tuple[DetailRow, ...] = ()
    ad_groups: tuple[DetailRow, ...] = ()
    targets: tuple[DetailRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "campaigns": [detail.to_dict() for detail in self.campaigns],
            "adGroups": [detail.to_dict() for detail in self.ad_groups],
            "targets": [detail.to_dict() for detail in self.targets],
        }


@dataclass(frozen=True)
class PausedBuckets:
    campaigns: PausedLevel
    ad_groups: PausedLevel
    targets: PausedLevel
    details: PausedDetails
    index: PausedIndex

    def to_dict(self) -> dict[str, Any]:
        return {
            "campaigns": self.campaigns.to_dict(),
            "adGroups": self.ad_groups.to_dict(),
            "targets": self.targets.to_dict(),
            "details": self.details.to_dict(),
            "index": self.index.to_dict(),
        }


def _paused_level(rows: Sequence[NormalizedRow], key_fn: Callable[[NormalizedRow], str]) -> PausedLevel:
    return PausedLevel(count=len({key_fn(row) for row in rows}), summary=compute_summary(rows))


def build_paused_buckets(
    rows: Sequence[NormalizedRow],
    ad_type: str,
    share_totals: Summary | None = None,
) -> PausedBuckets:
    """Paused index plus per-level summaries and drill-down rows (sorted by spend desc)."""
    campaign_rows = [row for row in rows if is_paused_campaign_row(row)]
    ad_group_rows = [row for row in rows if is_paused_ad_group_row(row, ad_type)]
    target_rows = [row for row in rows if is_paused_target_row(row, ad_type)]

    campaign_entities = aggregate_entities(
        campaign_rows, campaign_key, lambda row, _key, _items: campaign_label(row)
    )
    ad_group_entities = aggregate_entities(
        ad_group_rows,
        ad_group_key,
        lambda row, _key, _items: row.ad_group_name or row.ad_group_id or UNMAPPED,
    )
    target_entities = aggregate_entities(
        target_rows, target_label, lambda row, _key, _items: target_label(row)
    )

    return PausedBuckets(
        campaigns=_paused_level(campaign_rows, campaign_key),
        ad_groups=_paused_level(ad_group_rows, ad_group_key),
        targets=_paused_level(target_rows, target_key),
        details=PausedDetails(
            campaigns=build_detail_rows_with_fallback(campaign_entities, share_totals),
            ad_groups=build_detail_rows_with_fallback(ad_group_entities, share_totals),
            targets=build_detail_rows_with_fallback(target_entities, share_totals),
        ),
        index=build_paused_index(rows, ad_type),
    )
