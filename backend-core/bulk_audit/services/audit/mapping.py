"""Sheet definitions and tolerant header -> logical field mapping."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping


@dataclass(frozen=True)
class SheetDef:
    name: str
    ad_type: str
    kind: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "adType": self.ad_type, "kind": self.kind}


SB_CAMPAIGNS_SHEET = "Sponsored Brands campaigns"
SB_MULTI_AD_GROUP_SHEET = "SB Multi Ad Group Campaigns"

SHEET_DEFS: tuple[SheetDef, ...] = (
    SheetDef("Sponsored Products Campaigns", "SP", "campaign"),
    SheetDef(SB_CAMPAIGNS_SHEET, "SB", "campaign"),
    SheetDef(SB_MULTI_AD_GROUP_SHEET, "SB", "campaign"),
    SheetDef("Sponsored Display campaigns", "SD", "campaign"),
    SheetDef("SP Search Term Report", "SP", "searchTerm"),
    SheetDef("SB Search Term Report", "SB", "searchTerm"),
)

# Logical field -> candidate header names, most specific first.
DEFAULT_MAPPING: dict[str, list[str]] = {
    "entity": ["Entity"],
    "state": ["State"],
    "adFormat": ["Ad format", "Ad format (Informational only)"],
    "campaignStateInfo": ["Campaign state (Informational only)"],
    "adGroupStateInfo": [
        "Ad Group State (Informational only)",
        "Ad group state (Informational only)",
    ],
    "adGroupServingStatusInfo": ["Ad group serving status (Informational only)"],
    "placement": ["Placement"],
    "biddingStrategy": ["Bidding strategy"],
    "campaignName": ["Campaign name (Informational only)", "Campaign name"],
    "adGroupName": ["Ad group name", "Ad group name (Informational only)"],
    "campaignId": ["Campaign ID"],
    "adGroupId": ["Ad group ID"],
    "keywordText": ["Keyword text", "Native language keyword"],
    "matchType": ["Match type"],
    "customerSearchTerm": ["Customer search term"],
    "productTargetingExpression": [
        "Product targeting expression",
        "Targeting expression",
        "Resolved product targeting expression (Informational only)",
        "Resolved targeting expression (Informational only)",
    ],
    "impressions": ["Impressions", "Viewable impressions"],
    "clicks": ["Clicks"],
    "spend": ["Spend"],
    "sales": ["Sales", "Sales (Views & Clicks)"],
    "orders": ["Orders", "Orders (Views & Clicks)"],
    "units": ["Units", "Units (Views & Clicks)"],
}

REQUIRED_FIELDS: tuple[str, ...] = ("spend", "sales", "clicks", "orders")


def _normalize_header(value: str) -> str:
    """Lowercase + strip non-alphanumerics for tolerant matching."""
    normalized = str(value or "").replace("\xa0", " ").strip().lower()
    return "".join(ch for ch in normalized if ch.isascii() and ch.isalnum())


def build_auto_mapping(columns: Iterable[str]) -> dict[str, str]:
    """
    Pick a header for every logical field.

    First pass: a candidate whose normalized form equals a column's.
    Second pass: the first column containing any candidate. Unmatched fields map to "".
    """
    normalized_columns = [(column, _normalize_header(column)) for column in columns]
    mapping: dict[str, str] = {}

    for field, candidates in DEFAULT_MAPPING.items():
        match = ""
        for candidate in candidates:
            candidate_norm = _normalize_header(candidate)
            found = next(
                (original for original, norm in normalized_columns if norm == candidate_norm),
                None,
            )
            if found is not None:
                match = found
                break

        if not match:
            candidate_keys = [_normalize_header(candidate) for candidate in candidates]
            match = next(
                (
                    original
                    for original, norm in normalized_columns
                    if any(key in norm for key in candidate_keys)
                ),
                "",
            )
        mapping[field] = match

    return mapping


def merge_mapping(auto: Mapping[str, str], overrides: Mapping[str, str] | None) -> dict[str, str]:
    """Caller-chosen headers win field by field; unknown fields are ignored."""
    merged = dict(auto)
    for field, column in (overrides or {}).items():
        if field in DEFAULT_MAPPING and isinstance(column, str):
            merged[field] = column
    return merged


def missing_required_fields(mapping: Mapping[str, str]) -> list[str]:
    return [field for field in REQUIRED_FIELDS if not mapping.get(field)]


def effective_sheet_defs(sheet_names: Iterable[str]) -> list[SheetDef]:
    """Known sheets; the SB multi-ad-group export supersedes the plain SB campaigns sheet."""
    names = set(sheet_names)
    has_sb_multi = SB_MULTI_AD_GROUP_SHEET in names
    return [
        sheet_def
        for sheet_def in SHEET_DEFS
        if not (sheet_def.name == SB_CAMPAIGNS_SHEET and has_sb_multi)
    ]
