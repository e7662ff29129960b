# User value: This file keeps folder sizes, media records and access logs in sync with what admins actually uploaded.
import json
import logging
import os
import uuid
from datetime import datetime, timezone

from services.redis_client import redis_client as r

logger = logging.getLogger("api.media_store")

ACCESS_LOG_MAX_ENTRIES = int(os.getenv("ACCESS_LOG_MAX_ENTRIES", "10000"))
ACCESS_LOG_KEY = "access_logs"


def folder_key(folder_id: str) -> str:
    return f"folder:{folder_id}"


def media_key(media_id: str) -> str:
    return f"media:{media_id}"


def folder_media_key(folder_id: str) -> str:
    return f"folder_media:{folder_id}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def folder_exists(folder_id: str, *, client=None) -> bool:
    conn = client or r
    return bool(conn.exists(folder_key(folder_id)))


# User value: stores one media row per successful upload so the folder lists exactly what was stored.
def create_media_record(
    *,
    folder_id: str,
    file_name: str,
    media_kind: str,
    mime_type: str,
    size_bytes: int,
    stored: dict,
    client=None,
) -> dict:
    conn = client or r
    media_id = uuid.uuid4().hex
    record = {
        "id": media_id,
        "folder_id": folder_id,
        "file_name": file_name,
        "media_type": media_kind,
        "mime_type": mime_type or "",
        "file_size": int(size_bytes),
        "url": stored.get("url", ""),
        "object_id": stored.get("object_id", ""),
        "created_at": _now_iso(),
    }
    pipe = conn.pipeline()
    pipe.hset(media_key(media_id), mapping=record)
    pipe.rpush(folder_media_key(folder_id), media_id)
    pipe.execute()
    return record


def _count_keys(conn, pattern: str) -> int:
    return sum(1 for _ in conn.scan_iter(match=pattern, count=500))


def count_folders(*, client=None) -> int:
    return _count_keys(client or r, "folder:*")


def count_media(*, client=None) -> int:
    return _count_keys(client or r, "media:*")


def get_media_record(media_id: str, *, client=None) -> dict | None:
    conn = client or r
    data = conn.hgetall(media_key(media_id))
    return data or None


def delete_media_record(media_id: str, folder_id: str, *, client=None) -> None:
    conn = client or r
    pipe = conn.pipeline()
    pipe.delete(media_key(media_id))
    pipe.lrem(folder_media_key(folder_id), 0, media_id)
    pipe.execute()


def increment_folder_size(folder_id: str, delta_bytes: int, *, client=None) -> int:
    conn = client or r
    if not delta_bytes:
        return int(conn.hget(folder_key(folder_id), "size_in_bytes") or 0)
    value = int(conn.hincrby(folder_key(folder_id), "size_in_bytes", int(delta_bytes)))
    if value < 0:
        conn.hset(folder_key(folder_id), "size_in_bytes", 0)
        value = 0
    return value


def log_access(
    *,
    admin_id: str,
    folder_id: str,
    action: str,
    ip_address: str = "unknown",
    user_agent: str = "unknown",
    client=None,
) -> None:
    conn = client or r
    entry = json.dumps(
        {
            "ts": _now_iso(),
            "action": action,
            "admin_id": admin_id or "",
            "folder_id": folder_id or "",
            "ip_address": ip_address or "unknown",
            "user_agent": user_agent or "unknown",
        },
        ensure_ascii=False,
    )
    pipe = conn.pipeline()
    pipe.lpush(ACCESS_LOG_KEY, entry)
    pipe.ltrim(ACCESS_LOG_KEY, 0, ACCESS_LOG_MAX_ENTRIES - 1)
    pipe.execute()
    logger.info("access_logged action=%s admin=%s folder=%s", action, admin_id, folder_id)
