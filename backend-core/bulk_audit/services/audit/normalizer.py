"""Row normalization: raw spreadsheet records -> typed ``NormalizedRow``."""
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Literal, Mapping

from .targeting import normalize_match_type

AdType = Literal["SP", "SB", "SD"]
SheetKind = Literal["campaign", "searchTerm"]

ASIN_RE = re.compile(r"[A-Z0-9]{10}", re.IGNORECASE)
ASIN_VALUE_RE = re.compile(r"^[A-Z0-9]{10}$", re.IGNORECASE)
_NUMERIC_NOISE_RE = re.compile(r"[%,$]")
_WHITESPACE_RE = re.compile(r"\s+")


def _is_blank(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, float) and math.isnan(value)


def clean_text(value: Any) -> str:
    """Trimmed string, ``""`` for empty/NaN. Whole floats lose their ``.0`` (IDs read as numbers)."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_value(value: Any) -> str:
    """Case-insensitive comparison form: trimmed + lowercased."""
    return clean_text(value).lower()


def normalize_term(value: Any) -> str:
    """Search-term form: lowercased with whitespace runs collapsed."""
    return _WHITESPACE_RE.sub(" ", normalize_value(value))


def parse_number(value: Any) -> float:
    """Parse spreadsheet numerics: strip %, $ and thousands separators; junk -> 0."""
    if _is_blank(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    cleaned = _NUMERIC_NOISE_RE.sub("", str(value)).strip()
    try:
        parsed = float(cleaned)
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def extract_asins(expression: Any) -> list[str]:
    """All ASIN-shaped tokens in an expression, upper-cased, in order."""
    text = clean_text(expression)
    if not text:
        return []
    return [match.upper() for match in ASIN_RE.findall(text)]


def extract_asin_target(expression: str) -> str:
    if not expression or "asin" not in expression.lower():
        return ""
    asins = extract_asins(expression)
    return asins[0] if asins else ""


def is_asin_value(value: Any) -> bool:
    return bool(ASIN_VALUE_RE.match(clean_text(value)))


@dataclass(frozen=True)
class NormalizedRow:
    """One spreadsheet line, typed and cleaned. Ratios derive from the base metrics."""

    ad_type: AdType
    kind: SheetKind
    entity: str = ""
    entity_normalized: str = ""
    state: str = ""
    ad_format: str = ""
    campaign_state_info: str = ""
    ad_group_state_info: str = ""
    ad_group_serving_status_info: str = ""
    placement: str = ""
    bidding_strategy: str = ""
    campaign_id: str = ""
    campaign_name: str = ""
    campaign_key: str = ""
    ad_group_id: str = ""
    ad_group_name: str = ""
    keyword_text: str = ""
    match_type: str = ""
    auto_sub_type: str = ""
    product_targeting_expression: str = ""
    customer_search_term: str = ""
    asin_target: str = ""
    spend: float = 0.0
    sales: float = 0.0
    clicks: float = 0.0
    orders: float = 0.0
    units: float = 0.0
    impressions: float = 0.0

    @property
    def acos(self) -> float | None:
        return self.spend / self.sales if self.sales else None

    @property
    def cpc(self) -> float | None:
        return self.spend / self.clicks if self.clicks else None

    @property
    def cvr(self) -> float | None:
        return self.orders / self.clicks if self.clicks else None

    @property
    def roas(self) -> float | None:
        return self.sales / self.spend if self.spend else None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.update(acos=self.acos, cpc=self.cpc, cvr=self.cvr, roas=self.roas)
        return {_camel(key): value for key, value in data.items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def normalize_row(
    raw_row: Mapping[str, Any],
    column_mapping: Mapping[str, str],
    ad_type: str,
    kind: str,
) -> NormalizedRow:
    """
    Map one raw row to a ``NormalizedRow`` using ``column_mapping`` (field -> header).

    Unmapped fields and headers absent from the row yield ``""`` / ``0``.
    """

    def cell(field: str) -> Any:
        column = column_mapping.get(field)
        if not column:
            return None
        return raw_row.get(column)

    entity = clean_text(cell("entity"))
    entity_normalized = entity.lower()
    product_targeting_expression = clean_text(cell("productTargetingExpression"))
    match_info = normalize_match_type(
        clean_text(cell("matchType")),
        product_targeting_expression,
        entity_normalized,
    )
    campaign_id = clean_text(cell("campaignId"))
    campaign_name = clean_text(cell("campaignName"))

    return NormalizedRow(
        ad_type=ad_type,
        kind=kind,
        entity=entity,
        entity_normalized=entity_normalized,
        state=clean_text(cell("state")),
        ad_format=clean_text(cell("adFormat")),
        campaign_state_info=clean_text(cell("campaignStateInfo")),
        ad_group_state_info=clean_text(cell("adGroupStateInfo")),
        ad_group_serving_status_info=clean_text(cell("adGroupServingStatusInfo")),
        placement=clean_text(cell("placement")),
        bidding_strategy=clean_text(cell("biddingStrategy")),
        campaign_id=campaign_id,
        campaign_name=campaign_name,
        campaign_key=campaign_id or campaign_name,
        ad_group_id=clean_text(cell("adGroupId")),
        ad_group_name=clean_text(cell("adGroupName")),
        keyword_text=clean_text(cell("keywordText")),
        match_type=match_info.label,
        auto_sub_type=match_info.auto_sub_type,
        product_targeting_expression=product_targeting_expression,
        customer_search_term=clean_text(cell("customerSearchTerm")),
        asin_target=extract_asin_target(product_targeting_expression),
        spend=parse_number(cell("spend")),
        sales=parse_number(cell("sales")),
        clicks=parse_number(cell("clicks")),
        orders=parse_number(cell("orders")),
        units=parse_number(cell("units")),
        impressions=parse_number(cell("impressions")),
    )
