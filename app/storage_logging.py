"""Structured logging for the storage pipeline (routing, upload, fallback, delete)."""

import json
import logging
from typing import Any

logger = logging.getLogger("app.storage")


def _extra(
    event: str,
    *,
    owner_id: str | None = None,
    storage_type: str | None = None,
    file_name: str | None = None,
    size_bytes: int | None = None,
    file_id: str | None = None,
    duration_ms: int | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {"event": event}
    if owner_id is not None:
        out["owner_id"] = owner_id
    if storage_type is not None:
        out["storage_type"] = storage_type
    if file_name is not None:
        out["file_name"] = file_name
    if size_bytes is not None:
        out["size_mb"] = round(size_bytes / 1024 / 1024, 2)
    if file_id is not None:
        out["file_id"] = file_id
    if duration_ms is not None:
        out["duration_ms"] = duration_ms
    if error is not None:
        out["error"] = error
    return out


def log_storage_event(
    event: str,
    *,
    owner_id: str | None = None,
    storage_type: str | None = None,
    file_name: str | None = None,
    size_bytes: int | None = None,
    file_id: str | None = None,
    duration_ms: int | None = None,
    error: str | None = None,
) -> None:
    """Emit one structured log line for a storage lifecycle step.
    event: routed | uploaded | fallback | upload_failed | folder_created | deleted | delete_failed | delete_skipped | lookup_failed.
    """
    extra_dict = _extra(
        event,
        owner_id=owner_id,
        storage_type=storage_type,
        file_name=file_name,
        size_bytes=size_bytes,
        file_id=file_id,
        duration_ms=duration_ms,
        error=error,
    )
    msg = json.dumps(extra_dict)
    if event == "upload_failed":
        logger.error(msg, extra=extra_dict)
    elif event in ("fallback", "delete_failed", "delete_skipped", "lookup_failed"):
        logger.warning(msg, extra=extra_dict)
    else:
        logger.info(msg, extra=extra_dict)
