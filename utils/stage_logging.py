# User value: emits one JSON line per upload stage so a batch can be replayed from logs file by file.
import json
import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("api.stage")

STAGE_EVENTS = {"STARTED", "COMPLETED", "FAILED", "SKIPPED"}


def _scalar(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def build_stage_event(
    *,
    batch_id: str,
    stage: str,
    event: str,
    admin: str | None = None,
    folder_id: str | None = None,
    file_name: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> dict:
    event = event.upper()
    if event not in STAGE_EVENTS:
        raise ValueError(f"unknown stage event: {event}")

    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "batch_id": batch_id,
        "stage": stage.upper(),
        "event": event,
    }
    context = {"admin": admin, "folder_id": folder_id, "file_name": file_name, "error": error}
    payload.update({key: value for key, value in context.items() if value})
    payload.update({key: _scalar(value) for key, value in extra.items() if value is not None})
    return payload


def log_stage(**fields: Any) -> dict:
    payload = build_stage_event(**fields)
    level = logging.ERROR if payload["event"] == "FAILED" or payload.get("error") else logging.INFO
    logger.log(level, "stage_event %s", json.dumps(payload, ensure_ascii=False))
    return payload
