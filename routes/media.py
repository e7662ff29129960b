# User value: This file exposes the admin upload, delete and limits endpoints for folder media.
import logging

import anyio
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from schemas.media_contract import ACCESS_ACTION_MEDIA_DELETE
from schemas.responses import (
    MediaDeletedResponse,
    MediaLimitsData,
    MediaLimitsResponse,
    RateLimitStatus,
    UploadBatchResponse,
)
from services.auth import verify_admin_token
from services.feature_flags import is_access_log_enabled, is_image_compression_enabled
from services.media_limits import MB, MediaLimits, get_media_limits
from services.media_store import (
    delete_media_record,
    folder_exists,
    get_media_record,
    increment_folder_size,
    log_access,
)
from services.media_validator import CandidateFile
from services.storage import StorageError, delete_media
from services.upload_admission import process_upload_batch, record_batch_bookkeeping
from utils.metrics import incr
from utils.request_id import current_batch_id

router = APIRouter(prefix="/api/media", tags=["media"])
logger = logging.getLogger("api.media")

LIMITS_CACHE_CONTROL = "public, max-age=300"


def _error(status_code: int, error_code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error_code": error_code, "error_message": message})


def _client_meta(request: Request) -> tuple[str, str]:
    ip_address = request.headers.get("x-forwarded-for") or "unknown"
    user_agent = request.headers.get("user-agent") or "unknown"
    return ip_address, user_agent


def _require_folder(folder_id: str) -> None:
    try:
        exists = folder_exists(folder_id)
    except RedisError as exc:
        logger.error("folder_lookup_failed folder=%s error=%s", folder_id, exc.__class__.__name__)
        raise _error(503, "INFRA_REDIS", "Folder store temporarily unavailable") from exc
    if not exists:
        raise _error(404, "FOLDER_NOT_FOUND", "Folder not found")


def build_limits_payload(limits: MediaLimits) -> MediaLimitsResponse:
    return MediaLimitsResponse(
        ok=True,
        data=MediaLimitsData(
            imageMaxSizeBytes=limits.image_max_size_bytes,
            imageMaxSizeMB=limits.image_max_size_bytes / MB,
            videoMaxSizeBytes=limits.video_max_size_bytes,
            videoMaxSizeMB=limits.video_max_size_bytes / MB,
            rawMaxSizeBytes=limits.raw_max_size_bytes,
            rawMaxSizeMB=limits.raw_max_size_bytes / MB,
            imageMaxPx=limits.image_max_px,
            assetMaxTotalPx=limits.asset_max_total_px,
            rateLimit=RateLimitStatus(
                allowed=limits.rate_limit_allowed,
                remaining=limits.rate_limit_remaining,
                percentageRemaining=limits.percentage_remaining(),
            ),
        ),
    )


@router.get("/limits", response_model=MediaLimitsResponse)
def media_limits():
    try:
        payload = build_limits_payload(get_media_limits())
    except Exception as exc:
        logger.exception("media_limits_read_failed error=%s", exc.__class__.__name__)
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "Failed to fetch media limits", "code": "LIMITS_FETCH_ERROR"},
        )
    return JSONResponse(
        status_code=200,
        content=payload.model_dump(),
        headers={"Cache-Control": LIMITS_CACHE_CONTROL},
    )


@router.post(
    "/upload/{folder_id}",
    status_code=201,
    response_model=UploadBatchResponse,
    response_model_exclude_none=True,
)
async def upload_folder_media(
    folder_id: str,
    request: Request,
    files: list[UploadFile] | None = File(default=None),
    admin=Depends(verify_admin_token),
):
    _require_folder(folder_id)
    if not files:
        raise _error(400, "NO_FILES", "No files provided")

    candidates = []
    for upload in files:
        data = await upload.read()
        candidates.append(
            CandidateFile(
                data=data,
                mime_type=upload.content_type or "",
                name=upload.filename or "upload",
                size_bytes=len(data),
            )
        )

    # Runs in a worker thread; polls the event loop so files not yet
    # started are skipped once the client goes away.
    def _client_gone() -> bool:
        return anyio.from_thread.run(request.is_disconnected)

    batch = await run_in_threadpool(
        lambda: process_upload_batch(
            folder_id=folder_id,
            files=candidates,
            compress_enabled=is_image_compression_enabled(),
            admin_id=admin["admin_id"],
            batch_id=current_batch_id(),
            should_stop=_client_gone,
        )
    )

    ip_address, user_agent = _client_meta(request)
    await run_in_threadpool(
        lambda: record_batch_bookkeeping(
            batch=batch,
            folder_id=folder_id,
            admin_id=admin["admin_id"],
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )

    incr("media_upload_batches_total", cancelled=batch.cancelled)
    return UploadBatchResponse(
        message=batch.message,
        succeeded=batch.succeeded,
        total=batch.total,
        results=batch.results,
    )


@router.delete("/{media_id}", response_model=MediaDeletedResponse)
def delete_folder_media(media_id: str, request: Request, admin=Depends(verify_admin_token)):
    try:
        record = get_media_record(media_id)
    except RedisError as exc:
        raise _error(503, "INFRA_REDIS", "Media store temporarily unavailable") from exc
    if not record:
        raise _error(404, "MEDIA_NOT_FOUND", "Media not found")

    folder_id = record.get("folder_id", "")
    try:
        delete_media(record.get("object_id", ""))
    except StorageError as exc:
        raise _error(503, "STORAGE_ERROR", "Failed to delete media from storage") from exc

    size_bytes = int(record.get("file_size") or 0)
    try:
        delete_media_record(media_id, folder_id)
        folder_size = increment_folder_size(folder_id, -size_bytes)
    except RedisError as exc:
        logger.error(
            "media_record_cleanup_failed media_id=%s folder=%s error=%s",
            media_id,
            folder_id,
            exc.__class__.__name__,
        )
        raise _error(503, "INFRA_REDIS", "Media store temporarily unavailable") from exc

    if is_access_log_enabled():
        ip_address, user_agent = _client_meta(request)
        log_access(
            admin_id=admin["admin_id"],
            folder_id=folder_id,
            action=ACCESS_ACTION_MEDIA_DELETE,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    incr("media_deleted_total", media_kind=record.get("media_type", ""))
    logger.info("media_deleted media_id=%s folder=%s bytes=%s", media_id, folder_id, size_bytes)
    return MediaDeletedResponse(ok=True, id=media_id, folderSizeBytes=folder_size)
