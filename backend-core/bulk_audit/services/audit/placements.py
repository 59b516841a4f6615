"""Placement and bidding-strategy breakdowns from bid-adjustment rows."""
from __future__ import annotations

from typing import Sequence

from .aggregate import ShareRow, Summary, build_campaign_details, build_share_rows, group_by
from .normalizer import NormalizedRow
from .targeting import UNMAPPED

# Entity carrying placement metrics per ad type; SD has none.
PLACEMENT_ENTITIES: dict[str, str] = {
    "SP": "bidding adjustment",
    "SB": "bidding adjustment by placement",
}
BIDDING_STRATEGY_ENTITY = "bidding adjustment"


def bucket_by_placement(
    rows: Sequence[NormalizedRow],
    ad_type: str,
    share_totals: Summary | None = None,
) -> tuple[ShareRow, ...]:
    entity = PLACEMENT_ENTITIES.get(ad_type)
    if not entity:
        return ()
    grouped = group_by(
        [row for row in rows if row.entity_normalized == entity],
        lambda row: row.placement or UNMAPPED,
    )
    return build_share_rows(grouped, lambda items: build_campaign_details(items, share_totals))


def bucket_by_bidding_strategy(
    rows: Sequence[NormalizedRow],
    share_totals: Summary | None = None,
) -> tuple[ShareRow, ...]:
    grouped = group_by(
        [row for row in rows if row.entity_normalized == BIDDING_STRATEGY_ENTITY],
        lambda row: row.bidding_strategy or UNMAPPED,
    )
    return build_share_rows(grouped, lambda items: build_campaign_details(items, share_totals))
