import pytest

from bulk_audit.services.audit.normalizer import NormalizedRow
from bulk_audit.services.audit.search_terms import (
    TargetSets,
    build_branded_bucket,
    build_insights,
    build_target_sets,
    is_branded_term,
    parse_brand_aliases,
)


def term_row(term: str, spend: float = 0.0, sales: float = 0.0) -> NormalizedRow:
    return NormalizedRow(ad_type="SP", kind="searchTerm", customer_search_term=term, spend=spend, sales=sales)


def test_target_sets_normalize_keywords_and_asins():
    rows = [
        NormalizedRow(ad_type="SP", kind="campaign", keyword_text="Red  Shoes"),
        NormalizedRow(ad_type="SB", kind="campaign", product_targeting_expression='asin="b0abc12345"'),
    ]

    targets = build_target_sets(rows)

    assert targets.keywords == frozenset({"red shoes"})
    assert targets.asins == frozenset({"B0ABC12345"})


def test_insights_only_keep_untargeted_terms_with_sales():
    targets = TargetSets(keywords=frozenset({"red shoes"}), asins=frozenset({"B0ABC12345"}))
    rows = [
        term_row("red shoes", spend=5.0, sales=10.0),
        term_row("blue shoes", spend=5.0, sales=20.0),
        term_row("Blue  Shoes", spend=3.0, sales=5.0),
        term_row("wool socks", spend=20.0, sales=30.0),
        term_row("b0abc12345", spend=2.0, sales=9.0),
        term_row("B0XYZ98765", spend=4.0, sales=12.0),
        term_row("green hat", spend=50.0, sales=0.0),
        term_row("", spend=1.0, sales=1.0),
    ]

    insights = build_insights(rows, targets)

    assert [item.term for item in insights.unique_keywords] == ["wool socks", "blue shoes"]
    assert insights.unique_keywords[1].spend == 8.0
    assert insights.unique_keywords[1].sales == 25.0
    assert [item.term for item in insights.unique_asins] == ["B0XYZ98765"]
    assert insights.unique_asins[0].is_asin


def test_unique_lists_are_disjoint_and_all_have_sales():
    rows = [
        term_row("trail shoes", spend=1.0, sales=3.0),
        term_row("B0XYZ98765", spend=1.0, sales=2.0),
        term_row("B0ZERO0000", spend=9.0, sales=0.0),
    ]

    insights = build_insights(rows, TargetSets())

    keywords = {item.term for item in insights.unique_keywords}
    asins = {item.term for item in insights.unique_asins}
    assert keywords.isdisjoint(asins)
    assert keywords | asins == {"trail shoes", "B0XYZ98765"}
    assert all(item.sales > 0 for item in insights.unique_keywords + insights.unique_asins)


def test_insight_to_dict_flattens_summary():
    insights = build_insights([term_row("trail shoes", spend=2.0, sales=8.0)], TargetSets())
    payload = insights.to_dict()
    assert payload["uniqueAsins"] == []
    assert payload["uniqueKeywords"][0]["term"] == "trail shoes"
    assert payload["uniqueKeywords"][0]["isTargeted"] is False
    assert payload["uniqueKeywords"][0]["acos"] == pytest.approx(0.25)


def test_parse_brand_aliases():
    assert parse_brand_aliases(" Acme, ,ACME  Co ") == ["acme", "acme co"]
    assert parse_brand_aliases(["Acme", ""]) == ["acme"]
    assert parse_brand_aliases(None) == []
    assert parse_brand_aliases("") == []


def test_is_branded_term_matches_substring():
    assert is_branded_term("Acme Running Shoes", ["acme"])
    assert not is_branded_term("running shoes", ["acme"])


def test_branded_bucket_shares():
    rows = [
        term_row("acme shoes", spend=10.0, sales=40.0),
        term_row("Acme  boots", spend=5.0, sales=0.0),
        term_row("generic socks", spend=35.0, sales=60.0),
    ]

    bucket = build_branded_bucket(rows, ["acme"])

    assert bucket.summary.spend == 15.0
    assert bucket.summary.sales == 40.0
    assert bucket.spend_share_pct == pytest.approx(0.3)
    assert bucket.sales_share_pct == pytest.approx(0.4)
    assert bucket.count == 2


def test_branded_bucket_without_aliases_is_empty():
    bucket = build_branded_bucket([term_row("acme shoes", spend=10.0, sales=40.0)], [])
    assert bucket.count == 0
    assert bucket.summary.spend == 0.0
    assert bucket.to_dict()["spendSharePct"] is None
