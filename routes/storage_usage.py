# User value: This file lets admins check provider storage health before uploads start failing.
import logging

from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError

from schemas.responses import StorageUsageResponse
from services.auth import verify_admin_token
from services.media_store import count_folders, count_media
from services.storage_usage import build_storage_report
from services.usage_client import UsageFetchError, fetch_storage_usage
from utils.metrics import incr

router = APIRouter(prefix="/api/storage-usage", tags=["storage"])
logger = logging.getLogger("api.storage_usage")


@router.get("", response_model=StorageUsageResponse)
def storage_usage(admin=Depends(verify_admin_token)):
    try:
        usage = fetch_storage_usage()
    except UsageFetchError as exc:
        logger.error("storage_usage_fetch_failed admin=%s error=%s", admin["admin_id"], exc)
        raise HTTPException(
            status_code=502,
            detail={"error_code": "USAGE_FETCH_ERROR", "error_message": "Failed to fetch storage usage"},
        ) from exc

    try:
        total_folders = count_folders()
        total_files = count_media()
    except RedisError as exc:
        raise HTTPException(
            status_code=503,
            detail={"error_code": "INFRA_REDIS", "error_message": "Media store temporarily unavailable"},
        ) from exc

    report = build_storage_report(usage, total_folders=total_folders, total_files=total_files)
    incr("storage_usage_reports_total", status=report["status"])
    if report["status"] != "ok":
        logger.warning("storage_usage_%s percent_used=%s", report["status"], report["percentUsed"])
    return StorageUsageResponse(**report)
