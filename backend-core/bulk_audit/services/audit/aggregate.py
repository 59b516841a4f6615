"""Entity aggregation, summary arithmetic and share/detail rows."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence, TypeVar

from .keys import campaign_key
from .normalizer import NormalizedRow
from .targeting import UNMAPPED

T = TypeVar("T")

KeyFn = Callable[[NormalizedRow], str]
LabelFn = Callable[[NormalizedRow, str, Sequence[NormalizedRow]], str]


def _ratio(numerator: float, denominator: float | None) -> float | None:
    return numerator / denominator if denominator else None


@dataclass(frozen=True)
class Summary:
    """Totals over a group of rows; ratios are derived, ``None`` on zero denominators."""

    spend: float = 0.0
    sales: float = 0.0
    clicks: float = 0.0
    orders: float = 0.0

    @property
    def acos(self) -> float | None:
        return _ratio(self.spend, self.sales)

    @property
    def cpc(self) -> float | None:
        return _ratio(self.spend, self.clicks)

    @property
    def cvr(self) -> float | None:
        return _ratio(self.orders, self.clicks)

    @property
    def roas(self) -> float | None:
        return _ratio(self.sales, self.spend)

    def to_dict(self) -> dict[str, Any]:
        return {
            "spend": self.spend,
            "sales": self.sales,
            "clicks": self.clicks,
            "orders": self.orders,
            "acos": self.acos,
            "cpc": self.cpc,
            "cvr": self.cvr,
            "roas": self.roas,
        }


def compute_summary(rows: Iterable[NormalizedRow]) -> Summary:
    spend = sales = clicks = orders = 0.0
    for row in rows:
        spend += row.spend
        sales += row.sales
        clicks += row.clicks
        orders += row.orders
    return Summary(spend=spend, sales=sales, clicks=clicks, orders=orders)


def group_by(items: Iterable[T], key_fn: Callable[[T], str]) -> dict[str, list[T]]:
    """Group preserving first-seen key order; empty keys land in ``"Unmapped"``."""
    grouped: dict[str, list[T]] = {}
    for item in items:
        grouped.setdefault(key_fn(item) or UNMAPPED, []).append(item)
    return grouped


@dataclass(frozen=True)
class EntitySummary:
    key: str
    label: str
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "summary": self.summary.to_dict()}


def aggregate_entities(
    rows: Iterable[NormalizedRow],
    key_fn: KeyFn,
    label_fn: LabelFn | None = None,
) -> list[EntitySummary]:
    """One ``EntitySummary`` per distinct key, labelled from the group's first row."""
    return [
        EntitySummary(
            key=key,
            label=label_fn(items[0], key, items) if label_fn else key,
            summary=compute_summary(items),
        )
        for key, items in group_by(rows, key_fn).items()
    ]


@dataclass(frozen=True)
class DetailRow:
    """Drill-down row; share percentages are against the caller's share totals."""

    label: str
    spend: float
    sales: float
    acos: float | None
    roas: float | None
    spend_share_pct: float | None
    sales_share_pct: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "spend": self.spend,
            "sales": self.sales,
            "acos": self.acos,
            "roas": self.roas,
            "spendSharePct": self.spend_share_pct,
            "salesSharePct": self.sales_share_pct,
        }


def build_detail_rows(
    entities: Sequence[EntitySummary],
    share_spend_total: float,
    share_sales_total: float,
) -> tuple[DetailRow, ...]:
    rows = [
        DetailRow(
            label=entity.label,
            spend=entity.summary.spend,
            sales=entity.summary.sales,
            acos=entity.summary.acos,
            roas=entity.summary.roas,
            spend_share_pct=_ratio(entity.summary.spend, share_spend_total),
            sales_share_pct=_ratio(entity.summary.sales, share_sales_total),
        )
        for entity in entities
    ]
    return tuple(sorted(rows, key=lambda row: row.spend or 0.0, reverse=True))


def build_detail_rows_with_fallback(
    entities: Sequence[EntitySummary],
    share_totals: Summary | None,
) -> tuple[DetailRow, ...]:
    """Detail rows against ``share_totals`` when given, else against the entities' own totals."""
    if share_totals is not None:
        return build_detail_rows(entities, share_totals.spend, share_totals.sales)
    return build_detail_rows(
        entities,
        sum(entity.summary.spend for entity in entities),
        sum(entity.summary.sales for entity in entities),
    )


def pick_campaign_label(items: Sequence[NormalizedRow], fallback_key: str) -> str:
    for item in items:
        if item.campaign_name:
            return item.campaign_name
    for item in items:
        if item.campaign_id:
            return item.campaign_id
    return fallback_key or UNMAPPED


def campaign_label(row: NormalizedRow) -> str:
    return row.campaign_name or row.campaign_id or row.campaign_key or UNMAPPED


def target_label(row: NormalizedRow) -> str:
    return (
        row.keyword_text
        or row.asin_target
        or row.product_targeting_expression
        or row.customer_search_term
        or row.entity
        or UNMAPPED
    )


def build_campaign_details(
    rows: Sequence[NormalizedRow],
    share_totals: Summary | None,
) -> tuple[DetailRow, ...]:
    entities = aggregate_entities(
        rows,
        campaign_key,
        lambda _row, key, items: pick_campaign_label(items, key),
    )
    return build_detail_rows_with_fallback(entities, share_totals)


def build_target_details(
    rows: Sequence[NormalizedRow],
    share_totals: Summary | None,
) -> tuple[DetailRow, ...]:
    entities = aggregate_entities(rows, target_label, lambda row, _key, _items: target_label(row))
    return build_detail_rows_with_fallback(entities, share_totals)


@dataclass(frozen=True)
class ShareRow:
    """A labelled group with its share of the groups built in the same call."""

    label: str
    spend: float
    sales: float
    spend_pct: float | None
    sales_pct: float | None
    avg_cpc: float | None
    acos: float | None
    roas: float | None
    details: tuple[DetailRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "spend": self.spend,
            "sales": self.sales,
            "spendPct": self.spend_pct,
            "salesPct": self.sales_pct,
            "avgCpc": self.avg_cpc,
            "acos": self.acos,
            "roas": self.roas,
            "details": [detail.to_dict() for detail in self.details],
        }


def build_share_rows(
    grouped: dict[str, list[NormalizedRow]],
    detail_builder: Callable[[list[NormalizedRow]], tuple[DetailRow, ...]] | None = None,
) -> tuple[ShareRow, ...]:
    summaries = {label: compute_summary(items) for label, items in grouped.items()}
    total_spend = sum(summary.spend for summary in summaries.values())
    total_sales = sum(summary.sales for summary in summaries.values())
    return tuple(
        ShareRow(
            label=label,
            spend=summary.spend,
            sales=summary.sales,
            spend_pct=_ratio(summary.spend, total_spend),
            sales_pct=_ratio(summary.sales, total_sales),
            avg_cpc=summary.cpc,
            acos=summary.acos,
            roas=summary.roas,
            details=detail_builder(grouped[label]) if detail_builder else (),
        )
        for label, summary in summaries.items()
    )
