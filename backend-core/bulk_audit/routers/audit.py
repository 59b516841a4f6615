"""Bulksheet audit router."""
import json
import logging
import os
import tempfile
import time
from datetime import datetime

import pandas as pd
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from ..auth import require_user
from ..config import settings
from ..services.audit import build_audit_results, parse_bulk_workbook
from ..usage_logging import usage_logger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["audit"])

CHUNK_SIZE = 2 * 1024 * 1024  # 2MB chunks


@router.get("/healthz")
def health():
    """Health check endpoint."""
    return {"ok": True}


def parse_column_mapping(raw: str) -> dict:
    """`{sheetName: {field: header}}` JSON from the form; blank means no overrides."""
    if not raw or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"column_mapping is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict) or not all(isinstance(v, dict) for v in parsed.values()):
        raise ValueError("column_mapping must be an object of {sheetName: {field: header}}")
    return parsed


@router.post("")
async def run_audit(
    bulk_file: UploadFile = File(...),
    brand_aliases: str = Form(default=""),
    column_mapping: str = Form(default=""),
    user=Depends(require_user),
):
    """
    Run the bulksheet audit on an uploaded workbook.

    Returns sheet health warnings, the detected sheets with their column
    mapping, and the full audit results tree.
    """
    started = time.time()
    file_size = 0
    tmp_path = None

    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx") as tmp:
            tmp_path = tmp.name
            while True:
                chunk = await bulk_file.read(CHUNK_SIZE)
                if not chunk:
                    break
                file_size += len(chunk)
                if file_size > settings.max_upload_mb * 1024 * 1024:
                    raise HTTPException(
                        status_code=413,
                        detail=f"Bulk file too large (max {settings.max_upload_mb}MB)",
                    )
                tmp.write(chunk)
        await bulk_file.close()

        try:
            overrides = parse_column_mapping(column_mapping)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        aliases = brand_aliases if brand_aliases.strip() else settings.default_brand_aliases

        try:
            with pd.ExcelFile(tmp_path) as excel_file:
                ingest = parse_bulk_workbook(excel_file, overrides)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:
            raise HTTPException(status_code=400, detail=f"Bulk file parse error: {exc}") from exc

        results = build_audit_results(ingest.datasets, aliases)
        rows_processed = sum(len(dataset.rows) for dataset in ingest.datasets)

        usage_logger.log(
            {
                "user_id": user.get("sub"),
                "user_email": user.get("email"),
                "tool": "bulk_audit",
                "file_name": bulk_file.filename,
                "file_size_bytes": file_size,
                "rows_processed": rows_processed,
                "ad_types": list(results.ad_types.keys()),
                "sheet_count": len(ingest.datasets),
                "warning_count": len(ingest.warnings),
                "status": "success",
                "duration_ms": int((time.time() - started) * 1000),
                "app_version": settings.app_version,
                "generated_at": results.generated_at,
            }
        )

        return JSONResponse(
            content={
                "warnings": ingest.warnings,
                "sheets": ingest.sheet_summaries(),
                "results": results.to_dict(),
            }
        )

    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Bulk audit failed")
        usage_logger.log(
            {
                "user_id": user.get("sub"),
                "user_email": user.get("email"),
                "tool": "bulk_audit",
                "file_name": bulk_file.filename,
                "status": "error",
                "error": str(exc),
                "duration_ms": int((time.time() - started) * 1000),
                "app_version": settings.app_version,
                "generated_at": datetime.utcnow().isoformat(),
            }
        )
        raise HTTPException(status_code=500, detail=f"Audit failed: {exc}") from exc

    finally:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.warning("Could not remove temp upload %s", tmp_path)
