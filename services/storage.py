# -*- coding: utf-8 -*-

import os
import re
import json
import base64
import logging
import unicodedata
import uuid
from google.cloud import storage
from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions

logger = logging.getLogger("api.storage")

MEDIA_ROOT_PREFIX = os.getenv("MEDIA_ROOT_PREFIX", "media").strip("/") or "media"
STORAGE_TIMEOUT_SEC = float(os.getenv("STORAGE_TIMEOUT_SEC", "60"))
PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL", "https://storage.googleapis.com")


class StorageError(RuntimeError):
    pass


# =========================================================
# LAZY CLIENT
# =========================================================
_client = None


def _get_client():
    global _client
    if _client is not None:
        return _client

    creds_b64 = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")
    if creds_b64:
        creds = json.loads(base64.b64decode(creds_b64))
        _client = storage.Client.from_service_account_info(creds)
    else:
        _client = storage.Client()

    return _client


def _bucket_name() -> str:
    bucket_name = os.getenv("GCS_BUCKET_NAME")
    if not bucket_name:
        raise StorageError("GCS_BUCKET_NAME not set")
    return bucket_name


def safe_object_name(file_name: str) -> str:
    base = os.path.basename(file_name or "upload")
    base = unicodedata.normalize("NFKC", base)
    stem, ext = os.path.splitext(base)
    stem = re.sub(r"[^A-Za-z0-9_-]+", "_", stem).strip("_") or "upload"
    ext = re.sub(r"[^A-Za-z0-9.]+", "", ext.lower())
    return f"{stem}{ext}"


def folder_prefix(folder_id: str) -> str:
    return f"{MEDIA_ROOT_PREFIX}/folder-{folder_id}/"


def media_object_path(folder_id: str, file_name: str) -> str:
    return f"{folder_prefix(folder_id)}{uuid.uuid4().hex[:12]}-{safe_object_name(file_name)}"


# =========================================================
# UPLOAD MEDIA
# =========================================================
def upload_media(
    *,
    data: bytes,
    folder_id: str,
    file_name: str,
    media_kind: str,
    mime_type: str,
) -> dict:
    bucket_name = _bucket_name()
    object_id = media_object_path(folder_id, file_name)

    try:
        blob = _get_client().bucket(bucket_name).blob(object_id)
        blob.metadata = {"media_kind": media_kind, "original_name": file_name}
        blob.upload_from_string(data, content_type=mime_type, timeout=STORAGE_TIMEOUT_SEC)
    except (gcloud_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError) as exc:
        logger.error("storage_upload_failed object=%s error=%s: %s", object_id, exc.__class__.__name__, exc)
        raise StorageError(f"upload failed for {file_name}") from exc

    return {
        "object_id": object_id,
        "url": f"{PUBLIC_BASE_URL.rstrip('/')}/{bucket_name}/{object_id}",
        "gcs_uri": f"gs://{bucket_name}/{object_id}",
        "size": len(data),
        "format": os.path.splitext(object_id)[1].lstrip(".") or media_kind,
    }


# =========================================================
# DELETE
# =========================================================
def delete_media(object_id: str) -> None:
    bucket_name = _bucket_name()
    try:
        _get_client().bucket(bucket_name).blob(object_id).delete(timeout=STORAGE_TIMEOUT_SEC)
    except gcloud_exceptions.NotFound:
        logger.warning("storage_delete_missing object=%s", object_id)
        return
    except (gcloud_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError) as exc:
        logger.error("storage_delete_failed object=%s error=%s: %s", object_id, exc.__class__.__name__, exc)
        raise StorageError(f"delete failed for {object_id}") from exc
    logger.info("storage_deleted object=%s", object_id)
