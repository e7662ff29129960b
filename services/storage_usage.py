# User value: This file turns raw provider storage numbers into an ok/warning/critical signal so admins clear space in time.
import os
from typing import Tuple

GB = 1024 * 1024 * 1024
STORAGE_QUOTA_GB = float(os.getenv("MEDIA_STORAGE_QUOTA_GB", "25"))

STATUS_OK = "ok"
STATUS_WARNING = "warning"
STATUS_CRITICAL = "critical"

# Both thresholds are exclusive: exactly 80% is still ok.
WARNING_PERCENT = 80.0
CRITICAL_PERCENT = 95.0


def storage_status(percent_used: float) -> Tuple[str, str]:
    if percent_used > CRITICAL_PERCENT:
        return STATUS_CRITICAL, "CRITICAL: Storage at 95%+! Delete oldest folder immediately!"
    if percent_used > WARNING_PERCENT:
        return STATUS_WARNING, "WARNING: Storage at 80%+. Plan to delete oldest folder within a week."
    return STATUS_OK, "Storage usage is normal"


def build_storage_report(
    usage: dict,
    *,
    total_folders: int,
    total_files: int,
    quota_gb: float | None = None,
) -> dict:
    quota_gb = STORAGE_QUOTA_GB if quota_gb is None else quota_gb
    used_bytes = int(usage.get("used_bytes") or 0)
    used_gb = used_bytes / GB
    percent_used = round(used_gb / quota_gb * 100, 2) if quota_gb > 0 else 0.0
    status, recommendation = storage_status(percent_used)
    return {
        "currentGb": round(used_gb, 2),
        "quotaGb": quota_gb,
        "percentUsed": percent_used,
        "status": status,
        "recommendation": recommendation,
        "totalFolders": total_folders,
        "totalFiles": total_files,
        "bytesUsed": used_bytes,
        "provider": {
            "plan": usage.get("plan", "Unknown"),
            "lastUpdated": usage.get("last_updated", ""),
            "creditsUsed": usage.get("credits_used", 0.0),
            "creditsLimit": usage.get("credits_limit", 0.0),
            "creditsUsedPercent": usage.get("credits_used_percent", 0.0),
            "bandwidthBytes": usage.get("bandwidth_bytes", 0),
            "objects": usage.get("objects", 0),
            "resources": usage.get("resources", 0),
            "derivedResources": usage.get("derived_resources", 0),
            "requests": usage.get("requests", 0),
        },
    }
