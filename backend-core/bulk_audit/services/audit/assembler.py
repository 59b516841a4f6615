"""Per-ad-type audit orchestration producing the ``AuditResults`` tree."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from .aggregate import ShareRow, Summary, campaign_label, compute_summary
from .buckets import Bucket, bucket_by_entity_with_details
from .keys import campaign_key
from .mapping import SheetDef
from .match_types import MatchTypeBucket, MatchTypeMixFlag, bucket_by_match_type, detect_match_type_mix
from .normalizer import NormalizedRow, normalize_row, normalize_term, normalize_value
from .paused import PausedBuckets, build_paused_buckets, filter_enabled
from .placements import bucket_by_bidding_strategy, bucket_by_placement
from .search_terms import (
    BrandedBucket,
    SearchTermInsights,
    TargetSets,
    build_branded_bucket,
    build_insights,
    build_target_sets,
    parse_brand_aliases,
)
from .targeting import UNMAPPED

logger = logging.getLogger(__name__)

ENGINE_VERSION = "1.0.0"

BRANDED_AD_TYPES = frozenset({"SP", "SB"})


@dataclass(frozen=True)
class Dataset:
    """Normalized rows of one sheet."""

    definition: SheetDef
    rows: tuple[NormalizedRow, ...] = ()


@dataclass(frozen=True)
class AccountSummary:
    summary: Summary
    spend_share_pct: float | None
    sales_share_pct: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.summary.to_dict(),
            "spendSharePct": self.spend_share_pct,
            "salesSharePct": self.sales_share_pct,
        }


@dataclass(frozen=True)
class SbVideoPresence:
    has_video: bool
    ad_format_count: int
    video_ad_entity_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasVideo": self.has_video,
            "adFormatCount": self.ad_format_count,
            "videoAdEntityCount": self.video_ad_entity_count,
        }


@dataclass(frozen=True)
class AdTypeResults:
    summary: AccountSummary
    campaign_buckets: tuple[Bucket, ...]
    keyword_buckets: tuple[Bucket, ...]
    asin_buckets: tuple[Bucket, ...]
    match_type_buckets: tuple[MatchTypeBucket, ...]
    placement_buckets: tuple[ShareRow, ...]
    bidding_strategy_buckets: tuple[ShareRow, ...]
    paused_buckets: PausedBuckets
    branded_bucket: BrandedBucket | None
    match_type_mix_flag: MatchTypeMixFlag | None
    sb_video_presence: SbVideoPresence | None
    search_term_insights: SearchTermInsights

    def to_dict(self) -> dict[str, Any]:
        def optional(value: Any) -> Any:
            return value.to_dict() if value is not None else None

        return {
            "summary": self.summary.to_dict(),
            "campaignBuckets": [bucket.to_dict() for bucket in self.campaign_buckets],
            "keywordBuckets": [bucket.to_dict() for bucket in self.keyword_buckets],
            "asinBuckets": [bucket.to_dict() for bucket in self.asin_buckets],
            "matchTypeBuckets": [bucket.to_dict() for bucket in self.match_type_buckets],
            "placementBuckets": [bucket.to_dict() for bucket in self.placement_buckets],
            "biddingStrategyBuckets": [bucket.to_dict() for bucket in self.bidding_strategy_buckets],
            "pausedBuckets": self.paused_buckets.to_dict(),
            "brandedBucket": optional(self.branded_bucket),
            "matchTypeMixFlag": optional(self.match_type_mix_flag),
            "sbVideoPresence": optional(self.sb_video_presence),
            "searchTermInsights": self.search_term_insights.to_dict(),
        }


@dataclass(frozen=True)
class AuditResults:
    engine_version: str
    generated_at: str
    ad_types: dict[str, AdTypeResults] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "engineVersion": self.engine_version,
            "generatedAt": self.generated_at,
            "adTypes": {ad_type: result.to_dict() for ad_type, result in self.ad_types.items()},
        }


def detect_sb_video_presence(rows: Iterable[NormalizedRow]) -> SbVideoPresence:
    ad_format_count = 0
    video_ad_entity_count = 0
    for row in rows:
        if normalize_value(row.ad_format) == "video":
            ad_format_count += 1
        if row.entity_normalized == "video ad":
            video_ad_entity_count += 1
    return SbVideoPresence(
        has_video=ad_format_count > 0 or video_ad_entity_count > 0,
        ad_format_count=ad_format_count,
        video_ad_entity_count=video_ad_entity_count,
    )


def build_account_summary(enabled_rows: Sequence[NormalizedRow], account_totals: Summary) -> AccountSummary:
    summary = compute_summary(enabled_rows)
    return AccountSummary(
        summary=summary,
        spend_share_pct=summary.spend / account_totals.spend if account_totals.spend else None,
        sales_share_pct=summary.sales / account_totals.sales if account_totals.sales else None,
    )


def build_ad_type_results(
    ad_type: str,
    campaign_rows: Sequence[NormalizedRow],
    search_rows: Sequence[NormalizedRow],
    account_totals: Summary,
    targets: TargetSets,
    brand_aliases: Sequence[str],
) -> AdTypeResults:
    """Run the full pipeline for one ad type; reads only its own rows and the shared target sets."""
    paused_buckets = build_paused_buckets(campaign_rows, ad_type, account_totals)
    enabled_rows = filter_enabled(campaign_rows, paused_buckets.index, ad_type)
    logger.debug(
        "ad_type=%s campaign_rows=%d enabled_rows=%d search_rows=%d",
        ad_type,
        len(campaign_rows),
        len(enabled_rows),
        len(search_rows),
    )

    campaign_buckets = bucket_by_entity_with_details(
        enabled_rows,
        campaign_key,
        lambda row, _key, _items: campaign_label(row),
        account_totals,
    )
    keyword_buckets = bucket_by_entity_with_details(
        [row for row in enabled_rows if row.keyword_text],
        lambda row: normalize_term(row.keyword_text),
        lambda row, _key, _items: row.keyword_text or UNMAPPED,
        account_totals,
    )
    asin_buckets = bucket_by_entity_with_details(
        [row for row in enabled_rows if row.asin_target],
        lambda row: row.asin_target,
        lambda row, _key, _items: row.asin_target or UNMAPPED,
        account_totals,
    )

    search_ad_type = ad_type in BRANDED_AD_TYPES
    return AdTypeResults(
        summary=build_account_summary(enabled_rows, account_totals),
        campaign_buckets=tuple(campaign_buckets),
        keyword_buckets=tuple(keyword_buckets),
        asin_buckets=tuple(asin_buckets),
        match_type_buckets=tuple(bucket_by_match_type(enabled_rows, ad_type, account_totals)),
        placement_buckets=bucket_by_placement(enabled_rows, ad_type, account_totals),
        bidding_strategy_buckets=(
            bucket_by_bidding_strategy(enabled_rows, account_totals) if ad_type == "SP" else ()
        ),
        paused_buckets=paused_buckets,
        branded_bucket=build_branded_bucket(search_rows, brand_aliases) if search_ad_type else None,
        match_type_mix_flag=detect_match_type_mix(enabled_rows) if search_ad_type else None,
        sb_video_presence=detect_sb_video_presence(campaign_rows) if ad_type == "SB" else None,
        search_term_insights=build_insights(search_rows, targets),
    )


def build_audit_results(
    datasets: Sequence[Dataset],
    brand_aliases: str | Sequence[str] | None = None,
    generated_at: datetime | None = None,
) -> AuditResults:
    """
    Assemble the audit tree for every ad type present in ``datasets``.

    Target sets and account totals are computed once over all campaign-kind
    rows, then each ad type is processed independently in first-seen order.
    """
    aliases = parse_brand_aliases(brand_aliases)
    all_campaign_rows = [
        row for dataset in datasets if dataset.definition.kind == "campaign" for row in dataset.rows
    ]
    targets = build_target_sets(all_campaign_rows)
    account_totals = compute_summary(all_campaign_rows)

    by_ad_type: dict[str, list[Dataset]] = {}
    for dataset in datasets:
        by_ad_type.setdefault(dataset.definition.ad_type, []).append(dataset)

    ad_types: dict[str, AdTypeResults] = {}
    for ad_type, typed_sets in by_ad_type.items():
        campaign_rows = [row for ds in typed_sets if ds.definition.kind == "campaign" for row in ds.rows]
        search_rows = [row for ds in typed_sets if ds.definition.kind == "searchTerm" for row in ds.rows]
        ad_types[ad_type] = build_ad_type_results(
            ad_type, campaign_rows, search_rows, account_totals, targets, aliases
        )

    stamp = generated_at or datetime.now(timezone.utc)
    return AuditResults(
        engine_version=ENGINE_VERSION,
        generated_at=stamp.isoformat(),
        ad_types=ad_types,
    )


def normalize_dataset(
    definition: SheetDef,
    raw_rows: Iterable[Mapping[str, Any]],
    column_mapping: Mapping[str, str],
) -> Dataset:
    return Dataset(
        definition=definition,
        rows=tuple(
            normalize_row(raw_row, column_mapping, definition.ad_type, definition.kind)
            for raw_row in raw_rows
        ),
    )


def run_audit(
    sheets: Sequence[tuple[SheetDef, Iterable[Mapping[str, Any]]]],
    column_mappings: Mapping[str, Mapping[str, str]],
    brand_aliases: str | Sequence[str] | None = None,
) -> AuditResults:
    """Raw rows + per-sheet column mapping in, ``AuditResults`` out."""
    datasets = [
        normalize_dataset(definition, raw_rows, column_mappings.get(definition.name, {}))
        for definition, raw_rows in sheets
    ]
    return build_audit_results(datasets, brand_aliases)
