"""ACoS / No-Sales bucketing of aggregated entities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .aggregate import (
    DetailRow,
    EntitySummary,
    KeyFn,
    LabelFn,
    Summary,
    aggregate_entities,
    build_detail_rows,
    compute_summary,
    group_by,
)
from .normalizer import NormalizedRow

DEFAULT_BUCKETS: tuple[int, ...] = (0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100)

NO_SALES = "No Sales"
UNBUCKETED = "Unbucketed"
TOP_BUCKET = f"{DEFAULT_BUCKETS[-1]}%+"


def bucket_label(acos: float) -> str:
    """Ten-point band for an ACoS ratio (0.25 -> "20-30%")."""
    percent = acos * 100
    for lower, upper in zip(DEFAULT_BUCKETS, DEFAULT_BUCKETS[1:]):
        if lower <= percent < upper:
            return f"{lower}-{upper}%"
    if percent >= DEFAULT_BUCKETS[-1]:
        return TOP_BUCKET
    return UNBUCKETED


def bucket_sort_key(label: str) -> float:
    """No Sales first, bands by lower bound, then 100%+, then Unbucketed."""
    if label == NO_SALES:
        return -1.0
    if label == UNBUCKETED:
        return 9999.0
    if label.endswith("%+"):
        return float(label[:-2]) + 0.5
    try:
        return float(label.split("-", 1)[0])
    except ValueError:
        return 0.0


def bucket_label_for_summary(summary: Summary) -> str | None:
    """Bucket for one entity, or ``None`` when it has no ACoS and no wasted spend."""
    if summary.sales == 0 and summary.spend > 0:
        return NO_SALES
    if summary.acos is not None:
        return bucket_label(summary.acos)
    return None


@dataclass(frozen=True)
class Bucket:
    bucket: str
    spend: float
    sales: float
    spend_pct: float | None
    sales_pct: float | None
    avg_cpc: float | None
    details: tuple[DetailRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucket": self.bucket,
            "spend": self.spend,
            "sales": self.sales,
            "spendPct": self.spend_pct,
            "salesPct": self.sales_pct,
            "avgCpc": self.avg_cpc,
            "details": [detail.to_dict() for detail in self.details],
        }


def _share(value: float, total: float) -> float | None:
    return value / total if total else None


def classify(
    entities: Sequence[EntitySummary],
    share_totals: Summary | None = None,
) -> list[Bucket]:
    """
    Bucket entity summaries by ACoS band.

    ``spendPct``/``salesPct`` are shares of the entities bucketed here; detail
    rows are shared against ``share_totals`` (e.g. the whole account) when given.
    """
    members: dict[str, list[EntitySummary]] = {}
    for entity in entities:
        label = bucket_label_for_summary(entity.summary)
        if label is not None:
            members.setdefault(label, []).append(entity)

    bucketed = [entity for items in members.values() for entity in items]
    total_spend = sum(entity.summary.spend for entity in bucketed)
    total_sales = sum(entity.summary.sales for entity in bucketed)
    share_spend = share_totals.spend if share_totals is not None else total_spend
    share_sales = share_totals.sales if share_totals is not None else total_sales

    buckets = []
    for label, items in members.items():
        spend = sum(entity.summary.spend for entity in items)
        sales = sum(entity.summary.sales for entity in items)
        clicks = sum(entity.summary.clicks or 0.0 for entity in items)
        buckets.append(
            Bucket(
                bucket=label,
                spend=spend,
                sales=sales,
                spend_pct=_share(spend, total_spend),
                sales_pct=_share(sales, total_sales),
                avg_cpc=_share(spend, clicks),
                details=build_detail_rows(items, share_spend, share_sales),
            )
        )
    return sorted(buckets, key=lambda bucket: bucket_sort_key(bucket.bucket))


def bucket_by_entity_with_details(
    rows: Iterable[NormalizedRow],
    key_fn: KeyFn,
    label_fn: LabelFn | None,
    share_totals: Summary | None = None,
) -> list[Bucket]:
    return classify(aggregate_entities(rows, key_fn, label_fn), share_totals)


def bucket_totals(entity_totals: Sequence[Summary]) -> list[Bucket]:
    """Detail-free bucketing of bare summaries; negative ACoS lands in "Unbucketed"."""
    totals: dict[str, list[float]] = {}
    for summary in entity_totals:
        label = bucket_label_for_summary(summary)
        if label is None:
            continue
        acc = totals.setdefault(label, [0.0, 0.0, 0.0])
        acc[0] += summary.spend
        acc[1] += summary.sales
        acc[2] += summary.clicks

    total_spend = sum(summary.spend for summary in entity_totals)
    total_sales = sum(summary.sales for summary in entity_totals)
    buckets = [
        Bucket(
            bucket=label,
            spend=spend,
            sales=sales,
            spend_pct=_share(spend, total_spend),
            sales_pct=_share(sales, total_sales),
            avg_cpc=_share(spend, clicks),
        )
        for label, (spend, sales, clicks) in totals.items()
    ]
    return sorted(buckets, key=lambda bucket: bucket_sort_key(bucket.bucket))


def bucket_by_entity(rows: Iterable[NormalizedRow], key_fn: KeyFn) -> list[Bucket]:
    return bucket_totals([compute_summary(items) for items in group_by(rows, key_fn).values()])
