"""Composite hierarchy keys and entity-kind predicates.

Keys nest: a target key is scoped by its ad-group key, which is scoped by its
campaign key. All key construction for the paused index goes through here.
"""
from __future__ import annotations

from typing import NewType

from .normalizer import NormalizedRow

CampaignKey = NewType("CampaignKey", str)
AdGroupKey = NewType("AdGroupKey", str)
TargetKey = NewType("TargetKey", str)

KEY_SEPARATOR = "::"

CAMPAIGN_ENTITY = "campaign"
AD_GROUP_ENTITY = "ad group"
KEYWORD_ENTITY = "keyword"
PRODUCT_TARGETING_ENTITY = "product targeting"
CONTEXTUAL_TARGETING_ENTITY = "contextual targeting"
AUDIENCE_TARGETING_ENTITY = "audience targeting"

SEARCH_TARGET_ENTITIES = frozenset({KEYWORD_ENTITY, PRODUCT_TARGETING_ENTITY})
DISPLAY_TARGET_ENTITIES = frozenset({CONTEXTUAL_TARGETING_ENTITY, AUDIENCE_TARGETING_ENTITY})


def campaign_key(row: NormalizedRow) -> CampaignKey:
    return CampaignKey(row.campaign_id or row.campaign_name or row.campaign_key or "")


def ad_group_key(row: NormalizedRow) -> AdGroupKey:
    return AdGroupKey(
        f"{campaign_key(row)}{KEY_SEPARATOR}{row.ad_group_id or row.ad_group_name or ''}"
    )


def target_key(row: NormalizedRow) -> TargetKey:
    return TargetKey(
        f"{ad_group_key(row)}{KEY_SEPARATOR}"
        f"{row.keyword_text or row.product_targeting_expression or ''}"
    )


def target_entities(ad_type: str) -> frozenset[str]:
    """Entity kinds that count as targets: display targeting for SD, keywords/PT otherwise."""
    return DISPLAY_TARGET_ENTITIES if ad_type == "SD" else SEARCH_TARGET_ENTITIES


def is_target_entity(ad_type: str, entity_normalized: str) -> bool:
    return entity_normalized in target_entities(ad_type)
