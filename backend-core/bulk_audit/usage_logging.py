from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from supabase import Client, create_client

from .config import settings

logger = logging.getLogger(__name__)

# Top-level `usage_events` columns; anything else is folded into `meta`.
USAGE_COLUMNS = frozenset(
    {
        "occurred_at",
        "user_id",
        "user_email",
        "ip",
        "file_name",
        "file_size_bytes",
        "rows_processed",
        "campaigns",
        "status",
        "duration_ms",
        "app_version",
        "tool",
        "meta",
    }
)


def build_usage_row(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Split a usage payload into known columns plus a JSONB `meta` for the rest."""
    row = {k: v for k, v in payload.items() if k in USAGE_COLUMNS and v is not None}
    extra = {k: v for k, v in payload.items() if k not in USAGE_COLUMNS and v is not None}
    if extra:
        meta = row.get("meta")
        row["meta"] = {**meta, **extra} if isinstance(meta, dict) else extra
    return row


class UsageLogger:
    """Thin wrapper around Supabase inserts for `usage_events`."""

    def __init__(self) -> None:
        self._client: Optional[Client] = None
        self._supports_meta: Optional[bool] = None

    def _get_client(self) -> Optional[Client]:
        if not settings.usage_logging_enabled:
            return None
        if not settings.supabase_url or not settings.supabase_service_role:
            logger.warning("Usage logging enabled but Supabase service role credentials missing.")
            return None
        if not self._client:
            self._client = create_client(settings.supabase_url, settings.supabase_service_role)
        return self._client

    def log(self, payload: Dict[str, Any]) -> None:
        client = self._get_client()
        if not client:
            return
        try:
            row = build_usage_row(payload)
            if self._supports_meta is False:
                row.pop("meta", None)

            try:
                client.table("usage_events").insert(row).execute()
            except Exception as exc:  # noqa: BLE001
                if self._supports_meta is None and "meta" in str(exc).lower():
                    self._supports_meta = False
                    row.pop("meta", None)
                # Retry once without the optional column.
                client.table("usage_events").insert(row).execute()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to record usage event: %s", exc)


usage_logger = UsageLogger()
