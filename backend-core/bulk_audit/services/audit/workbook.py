"""Bulksheet workbook ingestion: Excel tabs -> raw rows -> normalized datasets."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import pandas as pd

from .assembler import Dataset, normalize_dataset
from .mapping import (
    SheetDef,
    build_auto_mapping,
    effective_sheet_defs,
    merge_mapping,
    missing_required_fields,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawSheet:
    """A sheet as handed over by ingestion: headers plus string-keyed rows."""

    name: str
    columns: tuple[str, ...] = ()
    rows: tuple[dict[str, Any], ...] = ()


@dataclass
class IngestResult:
    datasets: list[Dataset] = field(default_factory=list)
    mappings: dict[str, dict[str, str]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def sheet_summaries(self) -> list[dict[str, Any]]:
        return [
            {
                **dataset.definition.to_dict(),
                "rows": len(dataset.rows),
                "mapping": self.mappings.get(dataset.definition.name, {}),
            }
            for dataset in self.datasets
        ]


def frame_to_raw_sheet(name: str, df: pd.DataFrame) -> RawSheet:
    """Blank cells become "" so downstream never sees NaN."""
    df = df.copy()
    df.columns = [str(col).strip() for col in df.columns]
    df = df.astype(object).where(pd.notna(df), "")
    return RawSheet(
        name=name,
        columns=tuple(df.columns),
        rows=tuple(df.to_dict(orient="records")),
    )


def read_workbook(excel_file: pd.ExcelFile) -> tuple[dict[str, RawSheet], list[str]]:
    """
    Read every tab of a bulksheet export.

    Returns:
        Tuple of (sheet name -> RawSheet, warnings for tabs that could not be read)
    """
    sheets: dict[str, RawSheet] = {}
    warnings: list[str] = []
    for sheet_name in excel_file.sheet_names:
        try:
            df = excel_file.parse(sheet_name, dtype=object)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Skipping unreadable sheet %r: %s", sheet_name, exc)
            warnings.append(f"Error processing sheet '{sheet_name}': {exc}")
            continue
        sheets[str(sheet_name)] = frame_to_raw_sheet(str(sheet_name), df)
    return sheets, warnings


def build_datasets(
    sheets: Mapping[str, RawSheet],
    mapping_overrides: Mapping[str, Mapping[str, str]] | None = None,
) -> IngestResult:
    """Normalize the known sheets present in ``sheets``; unknown tabs are ignored."""
    result = IngestResult()
    overrides = mapping_overrides or {}

    defs: list[SheetDef] = effective_sheet_defs(sheets.keys())
    for sheet_def in defs:
        sheet = sheets.get(sheet_def.name)
        if sheet is None:
            continue

        mapping = merge_mapping(build_auto_mapping(sheet.columns), overrides.get(sheet_def.name))
        missing = missing_required_fields(mapping)
        if missing:
            logger.info("Sheet %r missing columns for %s", sheet_def.name, missing)
            result.warnings.append(f"{sheet_def.name}: missing {', '.join(missing)}")

        result.mappings[sheet_def.name] = mapping
        result.datasets.append(normalize_dataset(sheet_def, sheet.rows, mapping))

    if not result.datasets:
        result.warnings.append(
            f"No supported sheets were detected. Available tabs: {list(sheets.keys())}"
        )
    return result


def parse_bulk_workbook(
    excel_file: pd.ExcelFile,
    mapping_overrides: Mapping[str, Mapping[str, str]] | None = None,
) -> IngestResult:
    sheets, read_warnings = read_workbook(excel_file)
    result = build_datasets(sheets, mapping_overrides)
    result.warnings[:0] = read_warnings
    return result
