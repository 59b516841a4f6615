import pytest

from bulk_audit.services.audit.aggregate import Summary
from bulk_audit.services.audit.match_types import (
    bucket_by_match_type,
    detect_match_type_mix,
    is_bucketable_search_target,
)
from bulk_audit.services.audit.normalizer import NormalizedRow
from bulk_audit.services.audit.placements import bucket_by_bidding_strategy, bucket_by_placement


def make_row(entity: str, ad_type: str = "SP", **kwargs) -> NormalizedRow:
    return NormalizedRow(ad_type=ad_type, kind="campaign", entity=entity, entity_normalized=entity.lower(), **kwargs)


def test_campaign_level_rows_do_not_leak_into_match_type_totals():
    rows = [
        make_row("Keyword", campaign_id="C1", ad_group_id="AG1", keyword_text="shoes", match_type="Exact", spend=120.0),
        make_row("Bidding Adjustment", campaign_id="C1", placement="Placement Top", match_type="Unmapped", spend=80.0),
        make_row("Campaign", campaign_id="C1", match_type="Unmapped", spend=200.0),
    ]

    buckets = bucket_by_match_type(rows, "SP")

    assert len(buckets) == 1
    assert buckets[0].match_type == "Exact"
    assert buckets[0].spend == 120.0
    assert buckets[0].target_count == 1


def test_negative_keywords_are_not_bucketed():
    negative_entity = make_row("Negative Keyword", keyword_text="free", match_type="Exact", spend=2.0)
    unclassified = make_row("Keyword", keyword_text="cheap", match_type="Negative", spend=3.0)

    assert not is_bucketable_search_target(negative_entity)
    assert not is_bucketable_search_target(unclassified)
    assert bucket_by_match_type([negative_entity, unclassified], "SP") == []


def test_auto_bucket_carries_sub_type_breakdown():
    rows = [
        make_row(
            "Product Targeting",
            campaign_id="C1",
            ad_group_id="AG1",
            product_targeting_expression="close-match",
            match_type="Auto",
            auto_sub_type="Close Match",
            spend=10.0,
            sales=40.0,
        ),
        make_row(
            "Product Targeting",
            campaign_id="C1",
            ad_group_id="AG1",
            product_targeting_expression="substitutes",
            match_type="Auto",
            auto_sub_type="Substitutes",
            spend=30.0,
            sales=0.0,
        ),
        make_row(
            "Keyword",
            campaign_id="C2",
            ad_group_id="AG2",
            keyword_text="boots",
            match_type="Phrase",
            spend=60.0,
            sales=60.0,
        ),
    ]

    buckets = bucket_by_match_type(rows, "SP", Summary(spend=1000.0, sales=1000.0))

    assert [bucket.match_type for bucket in buckets] == ["Auto", "Phrase"]
    auto, phrase = buckets
    assert auto.target_count == 2
    assert auto.spend_pct == pytest.approx(0.4)
    assert [row.label for row in auto.auto_breakdown] == ["Close Match", "Substitutes"]
    assert auto.auto_breakdown[1].summary.spend == 30.0
    assert phrase.auto_breakdown == ()
    assert auto.details[0].label == "substitutes"
    assert auto.details[0].spend_share_pct == pytest.approx(0.03)


def test_sd_buckets_by_display_entity():
    rows = [
        make_row("Contextual Targeting", ad_type="SD", spend=10.0, sales=20.0),
        make_row("Audience Targeting", ad_type="SD", spend=30.0, sales=20.0),
        make_row("Campaign", ad_type="SD", spend=40.0, sales=40.0),
    ]

    buckets = bucket_by_match_type(rows, "SD")

    assert [(bucket.match_type, bucket.spend) for bucket in buckets] == [
        ("Contextual targeting", 10.0),
        ("Audience targeting", 30.0),
    ]
    assert buckets[0].to_dict()["matchType"] == "Contextual targeting"


def test_match_type_mix_flag():
    rows = [
        make_row("Keyword", campaign_id="C1", keyword_text="a", match_type="Exact"),
        make_row("Keyword", campaign_id="C1", keyword_text="b", match_type="Phrase"),
        make_row("Keyword", campaign_id="C2", keyword_text="c", match_type="Exact"),
        make_row("Keyword", campaign_id="C3", keyword_text="d", match_type="Exact"),
        make_row("Negative Keyword", campaign_id="C3", keyword_text="e", match_type="Phrase"),
        make_row("Campaign", campaign_id="C2", match_type="Unmapped"),
    ]

    flag = detect_match_type_mix(rows)

    assert flag.count == 1
    assert flag.campaigns[0].campaign_key == "C1"
    assert flag.campaigns[0].match_types == ("Exact", "Phrase")
    assert flag.to_dict() == {"count": 1, "campaigns": [{"campaignKey": "C1", "matchTypes": ["Exact", "Phrase"]}]}


def test_placements_come_from_bid_adjustment_rows():
    rows = [
        make_row("Bidding Adjustment", campaign_id="C1", campaign_name="Brand", placement="Placement Top", spend=30.0),
        make_row("Bidding Adjustment", campaign_id="C2", placement="Placement Product Page", spend=10.0, sales=50.0),
        make_row("Keyword", campaign_id="C1", keyword_text="shoes", match_type="Exact", spend=500.0),
    ]

    placements = bucket_by_placement(rows, "SP")

    assert [row.label for row in placements] == ["Placement Top", "Placement Product Page"]
    assert placements[0].spend_pct == pytest.approx(0.75)
    assert placements[0].acos is None
    assert placements[0].details[0].label == "Brand"
    assert placements[1].details[0].label == "C2"


def test_sb_placement_entity_and_sd_has_none():
    sb_rows = [make_row("Bidding Adjustment By Placement", ad_type="SB", placement="Top of search", spend=5.0)]
    assert [row.label for row in bucket_by_placement(sb_rows, "SB")] == ["Top of search"]
    assert bucket_by_placement(sb_rows, "SD") == ()


def test_bidding_strategy_groups_with_unmapped_fallback():
    rows = [
        make_row("Bidding Adjustment", campaign_id="C1", bidding_strategy="Dynamic bids - down only", spend=4.0),
        make_row("Bidding Adjustment", campaign_id="C2", spend=6.0),
    ]

    strategies = bucket_by_bidding_strategy(rows)

    assert [row.label for row in strategies] == ["Dynamic bids - down only", "Unmapped"]
    assert strategies[1].spend_pct == pytest.approx(0.6)
