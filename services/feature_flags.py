# User value: This file lets operators switch optional upload behaviour on or off without a deploy.
import os

BOOL_FLAG_VALUES = {"1", "true", "yes", "on", "0", "false", "no", "off"}


# User value: supports _flag so admins get predictable behaviour from a single env switch.
def _flag(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "1" if default else "0")).strip().lower()
    return raw in {"1", "true", "yes", "on"}


FEATURE_COMPRESS_IMAGES = _flag("COMPRESS_IMAGES", False)
FEATURE_ACCESS_LOGS = _flag("FEATURE_ACCESS_LOGS", True)


# User value: oversized photos are recompressed instead of rejected only when operators opt in.
def is_image_compression_enabled() -> bool:
    return FEATURE_COMPRESS_IMAGES


# User value: keeps an audit trail of admin uploads/deletes unless explicitly disabled.
def is_access_log_enabled() -> bool:
    return FEATURE_ACCESS_LOGS
