"""Ordered classification rules for match types and targeting expressions.

Each cascade is a tuple of ``(needle, result)`` pairs evaluated top to bottom
against a normalized string; the first needle found as a substring wins.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

UNMAPPED: Final[str] = "Unmapped"

AUTO_LABEL: Final[str] = "Auto"
PRODUCT_TARGETING_LABEL: Final[str] = "Product Targeting"

# Explicit "Match type" column values (keywords).
MATCH_TYPE_RULES: Final[tuple[tuple[str, str], ...]] = (
    ("exact", "Exact"),
    ("phrase", "Phrase"),
    ("broad", "Broad"),
    ("modified", "Modified Broad"),
)

# Product-targeting expressions, after hyphen normalization.
TARGETING_EXPRESSION_RULES: Final[tuple[tuple[str, str], ...]] = (
    ("asin-expanded", "ASINs Expanded"),
    ("asin=", "ASINs"),
    ("category=", "Category"),
    ("keyword-group=", "Related Keywords"),
)

AUTO_SUB_TYPE_RULES: Final[tuple[tuple[str, str], ...]] = (
    ("close-match", "Close Match"),
    ("loose-match", "Loose Match"),
    ("substitutes", "Substitutes"),
    ("complements", "Complements"),
)

# Fallback for non product-targeting rows without an explicit match type.
EXPRESSION_HEURISTIC_RULES: Final[tuple[tuple[str, str], ...]] = (
    ("expanded", "ASINs Expanded"),
    ("asin", "ASINs"),
)
EXPRESSION_HEURISTIC_DEFAULT: Final[str] = "Targeting"

_SEPARATOR_RE = re.compile(r"[_\s]+")


@dataclass(frozen=True)
class MatchInfo:
    label: str
    auto_sub_type: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "autoSubType": self.auto_sub_type}


def first_match(value: str, rules: tuple[tuple[str, str], ...]) -> str | None:
    """Return the result of the first rule whose needle occurs in ``value``."""
    for needle, result in rules:
        if needle in value:
            return result
    return None


def normalize_expression(expression: str) -> str:
    """Lowercase and fold underscores/whitespace runs into single hyphens."""
    return _SEPARATOR_RE.sub("-", str(expression or "").lower())


def classify_targeting_expression(expression: str) -> MatchInfo:
    """Classify a product-targeting expression such as ``asin="B0..."`` or ``close-match``."""
    if not expression:
        return MatchInfo(UNMAPPED)

    normalized = normalize_expression(expression)
    label = first_match(normalized, TARGETING_EXPRESSION_RULES)
    if label:
        return MatchInfo(label)

    sub_type = first_match(normalized, AUTO_SUB_TYPE_RULES)
    if sub_type:
        return MatchInfo(AUTO_LABEL, sub_type)

    return MatchInfo(PRODUCT_TARGETING_LABEL)


def normalize_match_type(
    match_type: str,
    targeting_expression: str,
    entity_normalized: str,
) -> MatchInfo:
    """
    Derive the match-type label for a row.

    Precedence:
    1. Explicit match type column: first rule found in it, else the raw value
       ("Negative Exact" -> "Exact").
    2. Product targeting rows: full targeting-expression cascade.
    3. Anything else with an expression: ASIN heuristics, else "Targeting".
    """
    if match_type:
        return MatchInfo(first_match(match_type.lower(), MATCH_TYPE_RULES) or match_type)

    if entity_normalized == "product targeting":
        return classify_targeting_expression(targeting_expression)

    if not targeting_expression:
        return MatchInfo(UNMAPPED)

    lowered = targeting_expression.lower()
    return MatchInfo(first_match(lowered, EXPRESSION_HEURISTIC_RULES) or EXPRESSION_HEURISTIC_DEFAULT)
