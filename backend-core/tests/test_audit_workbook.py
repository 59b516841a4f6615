import pandas as pd

from bulk_audit.services.audit.workbook import (
    RawSheet,
    build_datasets,
    frame_to_raw_sheet,
    parse_bulk_workbook,
)

SP_SHEET = pd.DataFrame(
    [
        {
            "Entity": "Campaign",
            "Campaign ID": 111,
            "Campaign Name (Informational only)": "Brand",
            "Campaign State (Informational only)": "enabled",
            "Keyword Text": None,
            "Match Type": None,
            "Spend": 50.5,
            "Sales": 200,
            "Clicks": 20,
            "Orders": 4,
        },
        {
            "Entity": "Keyword",
            "Campaign ID": 111,
            "Campaign Name (Informational only)": "Brand",
            "Campaign State (Informational only)": "enabled",
            "Keyword Text": "running shoes",
            "Match Type": "exact",
            "Spend": 50.5,
            "Sales": 200,
            "Clicks": 20,
            "Orders": 4,
        },
    ]
)


def write_workbook(path, sheets):
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)


def test_parse_bulk_workbook_reads_known_sheets(tmp_path):
    path = tmp_path / "bulk.xlsx"
    write_workbook(
        path,
        {
            "Portfolios": pd.DataFrame([{"Portfolio ID": 1}]),
            "Sponsored Products Campaigns": SP_SHEET,
            "SP Search Term Report": pd.DataFrame([{"Customer Search Term": "trail shoes", "Spend": 3}]),
        },
    )

    with pd.ExcelFile(path) as excel_file:
        result = parse_bulk_workbook(excel_file)

    assert [dataset.definition.name for dataset in result.datasets] == [
        "Sponsored Products Campaigns",
        "SP Search Term Report",
    ]
    campaign_rows = result.datasets[0].rows
    assert len(campaign_rows) == 2
    assert campaign_rows[0].campaign_id == "111"
    assert campaign_rows[0].keyword_text == ""
    assert campaign_rows[1].match_type == "Exact"
    assert campaign_rows[1].spend == 50.5
    assert result.warnings == ["SP Search Term Report: missing sales, clicks, orders"]

    summaries = result.sheet_summaries()
    assert summaries[0]["adType"] == "SP"
    assert summaries[0]["rows"] == 2
    assert summaries[0]["mapping"]["spend"] == "Spend"


def test_frame_to_raw_sheet_blanks_missing_cells():
    sheet = frame_to_raw_sheet("X", pd.DataFrame([{" Spend ": None, "Sales": 1}]))
    assert sheet.columns == ("Spend", "Sales")
    assert sheet.rows[0]["Spend"] == ""


def test_build_datasets_applies_mapping_overrides():
    sheets = {
        "Sponsored Display campaigns": RawSheet(
            name="Sponsored Display campaigns",
            columns=("Entity", "Cost", "Sales", "Clicks", "Orders"),
            rows=({"Entity": "Audience Targeting", "Cost": "12.5", "Sales": 0, "Clicks": 3, "Orders": 0},),
        )
    }

    result = build_datasets(sheets, {"Sponsored Display campaigns": {"spend": "Cost"}})

    assert result.warnings == []
    assert result.datasets[0].definition.ad_type == "SD"
    assert result.datasets[0].rows[0].spend == 12.5


def test_build_datasets_warns_when_nothing_matches():
    result = build_datasets({"Notes": RawSheet(name="Notes")})

    assert result.datasets == []
    assert result.warnings == ["No supported sheets were detected. Available tabs: ['Notes']"]
