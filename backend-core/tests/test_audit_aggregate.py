import pytest

from bulk_audit.services.audit.aggregate import (
    EntitySummary,
    Summary,
    aggregate_entities,
    build_detail_rows,
    build_detail_rows_with_fallback,
    build_share_rows,
    compute_summary,
    group_by,
    pick_campaign_label,
    target_label,
)
from bulk_audit.services.audit.normalizer import NormalizedRow


def make_row(**kwargs) -> NormalizedRow:
    return NormalizedRow(ad_type="SP", kind="campaign", **kwargs)


def test_compute_summary_totals_and_ratios():
    rows = [
        make_row(spend=10.0, sales=0.0, clicks=4.0, orders=0.0),
        make_row(spend=30.0, sales=80.0, clicks=6.0, orders=2.0),
    ]

    summary = compute_summary(rows)

    assert summary.spend == 40.0
    assert summary.sales == 80.0
    assert summary.acos == pytest.approx(0.5)
    assert summary.cpc == pytest.approx(4.0)
    assert summary.cvr == pytest.approx(0.2)
    assert summary.roas == pytest.approx(2.0)


def test_empty_summary_has_no_ratios():
    summary = compute_summary([])
    assert summary == Summary()
    assert summary.to_dict() == {
        "spend": 0.0,
        "sales": 0.0,
        "clicks": 0.0,
        "orders": 0.0,
        "acos": None,
        "cpc": None,
        "cvr": None,
        "roas": None,
    }


def test_ratios_rederive_from_totals():
    payload = Summary(spend=12.0, sales=48.0, clicks=8.0, orders=3.0).to_dict()
    assert payload["acos"] == payload["spend"] / payload["sales"]
    assert payload["cpc"] == payload["spend"] / payload["clicks"]
    assert payload["cvr"] == payload["orders"] / payload["clicks"]
    assert payload["roas"] == payload["sales"] / payload["spend"]


def test_group_by_keeps_first_seen_order_and_unmapped():
    grouped = group_by(["b1", "", "a1", "b2"], lambda item: item[:1])
    assert list(grouped) == ["b", "Unmapped", "a"]
    assert grouped["b"] == ["b1", "b2"]


def test_aggregate_entities_labels_from_first_row():
    rows = [
        make_row(campaign_id="C1", campaign_name="Brand", spend=5.0),
        make_row(campaign_id="C1", campaign_name="Brand", spend=7.0),
        make_row(campaign_id="C2", spend=1.0),
    ]

    entities = aggregate_entities(
        rows,
        lambda row: row.campaign_id,
        lambda row, key, _items: row.campaign_name or key,
    )

    assert [(e.key, e.label, e.summary.spend) for e in entities] == [
        ("C1", "Brand", 12.0),
        ("C2", "C2", 1.0),
    ]


def test_detail_rows_sort_by_spend_and_share_against_totals():
    entities = [
        EntitySummary("a", "A", Summary(spend=10.0, sales=20.0)),
        EntitySummary("b", "B", Summary(spend=30.0, sales=0.0)),
    ]

    rows = build_detail_rows(entities, 100.0, 0.0)

    assert [row.label for row in rows] == ["B", "A"]
    assert rows[0].spend_share_pct == pytest.approx(0.3)
    assert rows[0].sales_share_pct is None
    assert rows[0].acos is None
    assert rows[1].to_dict()["spendSharePct"] == pytest.approx(0.1)


def test_detail_rows_fall_back_to_own_totals():
    entities = [
        EntitySummary("a", "A", Summary(spend=10.0, sales=20.0)),
        EntitySummary("b", "B", Summary(spend=30.0, sales=60.0)),
    ]

    rows = build_detail_rows_with_fallback(entities, None)

    assert rows[0].spend_share_pct == pytest.approx(0.75)
    assert rows[1].sales_share_pct == pytest.approx(0.25)


def test_pick_campaign_label_prefers_any_name():
    rows = [make_row(campaign_id="C1"), make_row(campaign_id="C1", campaign_name="Brand")]
    assert pick_campaign_label(rows, "C1") == "Brand"
    assert pick_campaign_label([make_row(campaign_id="C9")], "C9") == "C9"
    assert pick_campaign_label([make_row()], "") == "Unmapped"


def test_target_label_precedence():
    assert target_label(make_row(keyword_text="shoes", asin_target="B0ABC12345")) == "shoes"
    assert target_label(make_row(asin_target="B0ABC12345", product_targeting_expression='asin="B0ABC12345"')) == "B0ABC12345"
    assert target_label(make_row(entity="Keyword")) == "Keyword"
    assert target_label(make_row()) == "Unmapped"


def test_share_rows_normalize_within_call():
    grouped = {
        "Top": [make_row(spend=30.0, sales=60.0, clicks=10.0)],
        "Rest": [make_row(spend=10.0, sales=0.0, clicks=5.0)],
    }

    rows = build_share_rows(grouped)

    assert [row.label for row in rows] == ["Top", "Rest"]
    assert rows[0].spend_pct == pytest.approx(0.75)
    assert rows[1].sales_pct == pytest.approx(0.0)
    assert rows[0].avg_cpc == pytest.approx(3.0)
    assert rows[1].acos is None
    assert rows[0].details == ()


def test_share_rows_with_zero_totals_have_no_pct():
    rows = build_share_rows({"Only": [make_row()]})
    assert rows[0].spend_pct is None
    assert rows[0].sales_pct is None
