"""Bulksheet audit engine modules."""

from .assembler import AuditResults, Dataset, build_audit_results, run_audit
from .mapping import SHEET_DEFS, SheetDef, build_auto_mapping
from .normalizer import NormalizedRow, normalize_row
from .paused import build_paused_index, filter_enabled
from .search_terms import build_insights, build_target_sets
from .targeting import classify_targeting_expression
from .workbook import build_datasets, parse_bulk_workbook, read_workbook

__all__ = [
    "AuditResults",
    "Dataset",
    "build_audit_results",
    "run_audit",
    "SHEET_DEFS",
    "SheetDef",
    "build_auto_mapping",
    "NormalizedRow",
    "normalize_row",
    "build_paused_index",
    "filter_enabled",
    "build_insights",
    "build_target_sets",
    "classify_targeting_expression",
    "build_datasets",
    "parse_bulk_workbook",
    "read_workbook",
]
