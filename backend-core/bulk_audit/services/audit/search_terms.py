"""Search-term gap analysis and branded-term bucket."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .aggregate import Summary, compute_summary, group_by
from .normalizer import (
    NormalizedRow,
    extract_asins,
    is_asin_value,
    normalize_term,
)


@dataclass(frozen=True)
class TargetSets:
    """Keywords (normalized text) and ASINs (upper-case) already targeted anywhere in the account."""

    keywords: frozenset[str] = frozenset()
    asins: frozenset[str] = frozenset()


def build_target_sets(rows: Iterable[NormalizedRow]) -> TargetSets:
    keywords: set[str] = set()
    asins: set[str] = set()
    for row in rows:
        if row.keyword_text:
            keywords.add(normalize_term(row.keyword_text))
        asins.update(extract_asins(row.product_targeting_expression))
    return TargetSets(keywords=frozenset(keywords), asins=frozenset(asins))


@dataclass(frozen=True)
class SearchTermInsight:
    term: str
    is_asin: bool
    is_targeted: bool
    summary: Summary

    @property
    def spend(self) -> float:
        return self.summary.spend

    @property
    def sales(self) -> float:
        return self.summary.sales

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "isAsin": self.is_asin,
            "isTargeted": self.is_targeted,
            **self.summary.to_dict(),
        }


@dataclass(frozen=True)
class SearchTermInsights:
    unique_keywords: tuple[SearchTermInsight, ...] = ()
    unique_asins: tuple[SearchTermInsight, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "uniqueKeywords": [item.to_dict() for item in self.unique_keywords],
            "uniqueAsins": [item.to_dict() for item in self.unique_asins],
        }


def build_term_insights(rows: Iterable[NormalizedRow], targets: TargetSets) -> list[SearchTermInsight]:
    """One insight per distinct (case/space normalized) search term."""
    grouped = group_by(
        (row for row in rows if row.customer_search_term),
        lambda row: normalize_term(row.customer_search_term),
    )
    insights = []
    for term_key, term_rows in grouped.items():
        sample = term_rows[0].customer_search_term or term_key
        is_asin = is_asin_value(sample)
        if is_asin:
            is_targeted = sample.strip().upper() in targets.asins
        else:
            is_targeted = normalize_term(sample) in targets.keywords
        insights.append(
            SearchTermInsight(
                term=sample,
                is_asin=is_asin,
                is_targeted=is_targeted,
                summary=compute_summary(term_rows),
            )
        )
    return insights


def build_insights(rows: Iterable[NormalizedRow], targets: TargetSets) -> SearchTermInsights:
    """Untargeted terms with sales > 0, split keyword vs ASIN, spend descending."""
    unique = [item for item in build_term_insights(rows, targets) if not item.is_targeted and item.sales > 0]

    def by_spend(items: Iterable[SearchTermInsight]) -> tuple[SearchTermInsight, ...]:
        return tuple(sorted(items, key=lambda item: item.spend, reverse=True))

    return SearchTermInsights(
        unique_keywords=by_spend(item for item in unique if not item.is_asin),
        unique_asins=by_spend(item for item in unique if item.is_asin),
    )


def parse_brand_aliases(value: str | Sequence[str] | None) -> list[str]:
    """Comma-separated text (or a list) -> trimmed, lower-cased, non-empty aliases."""
    if not value:
        return []
    parts = value.split(",") if isinstance(value, str) else value
    return [alias for alias in (normalize_term(part) for part in parts) if alias]


def is_branded_term(term: str, brand_aliases: Sequence[str]) -> bool:
    normalized = normalize_term(term)
    return any(alias in normalized for alias in brand_aliases)


@dataclass(frozen=True)
class BrandedBucket:
    summary: Summary
    spend_share_pct: float | None
    sales_share_pct: float | None
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "spendSharePct": self.spend_share_pct,
            "salesSharePct": self.sales_share_pct,
            "count": self.count,
        }


def build_branded_bucket(rows: Sequence[NormalizedRow], brand_aliases: Sequence[str]) -> BrandedBucket:
    """Search terms containing any brand alias, with their share of all search-term spend/sales."""
    if not brand_aliases:
        return BrandedBucket(summary=Summary(), spend_share_pct=None, sales_share_pct=None, count=0)

    total = compute_summary(rows)
    branded = [row for row in rows if is_branded_term(row.customer_search_term, brand_aliases)]
    summary = compute_summary(branded)
    return BrandedBucket(
        summary=summary,
        spend_share_pct=summary.spend / total.spend if total.spend else None,
        sales_share_pct=summary.sales / total.sales if total.sales else None,
        count=len({normalize_term(row.customer_search_term) for row in branded}),
    )
