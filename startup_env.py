# User value: refuses to boot with config that would make uploads fail later in confusing ways.
import logging
import os
from typing import List, Mapping, Tuple

from services.feature_flags import BOOL_FLAG_VALUES

logger = logging.getLogger("api.startup")

REQUIRED_KEYS = ("GOOGLE_CLIENT_ID", "GCS_BUCKET_NAME", "REDIS_URL", "CORS_ALLOW_ORIGINS")
BOOL_FLAGS = ("COMPRESS_IMAGES", "FEATURE_ACCESS_LOGS")
POSITIVE_NUMBERS = (
    "MEDIA_LIMITS_CACHE_TTL_SEC",
    "MEDIA_USAGE_TIMEOUT_SEC",
    "STORAGE_TIMEOUT_SEC",
    "MEDIA_STORAGE_QUOTA_GB",
)


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _check_redis_url(value: str, errors: List[str]) -> None:
    if not value.startswith(("redis://", "rediss://")):
        errors.append("REDIS_URL must start with redis:// or rediss://")


def _check_cors_origins(value: str, errors: List[str]) -> None:
    origins = [x.strip() for x in value.split(",") if x.strip()]
    if not origins:
        errors.append("CORS_ALLOW_ORIGINS must contain at least one origin")
    for origin in origins:
        if origin == "*":
            errors.append("CORS_ALLOW_ORIGINS must not contain '*' in strict allowlist mode")
        elif not origin.startswith(("http://", "https://")):
            errors.append(f"CORS origin must start with http:// or https://: {origin}")


def _validate_bool_flag_env(key: str, errors: List[str], env: Mapping[str, str] | None = None) -> None:
    raw = (os.environ if env is None else env).get(key)
    if raw is not None and str(raw).strip().lower() not in BOOL_FLAG_VALUES:
        errors.append(f"{key} must be one of {sorted(BOOL_FLAG_VALUES)}")


def _validate_positive_number(key: str, errors: List[str], env: Mapping[str, str] | None = None) -> None:
    raw = (os.environ if env is None else env).get(key)
    if raw is None:
        return
    try:
        if float(raw) <= 0:
            errors.append(f"{key} must be > 0")
    except ValueError:
        errors.append(f"{key} must be a number")


def collect_env_problems(env: Mapping[str, str]) -> Tuple[List[str], List[str]]:
    """Return (errors, warnings) for the given environment mapping."""
    errors: List[str] = [f"{key} is required" for key in REQUIRED_KEYS if _blank(env.get(key))]
    warnings: List[str] = []

    if not _blank(env.get("REDIS_URL")):
        _check_redis_url(env["REDIS_URL"], errors)
    if not _blank(env.get("CORS_ALLOW_ORIGINS")):
        _check_cors_origins(env["CORS_ALLOW_ORIGINS"], errors)
    for key in BOOL_FLAGS:
        _validate_bool_flag_env(key, errors, env)
    for key in POSITIVE_NUMBERS:
        _validate_positive_number(key, errors, env)

    if _blank(env.get("MEDIA_USAGE_URL")) and _blank(env.get("MEDIA_CLOUD_NAME")):
        warnings.append("MEDIA_USAGE_URL and MEDIA_CLOUD_NAME are not set; uploads will use fallback media limits")
    if _blank(env.get("GOOGLE_APPLICATION_CREDENTIALS_JSON")):
        warnings.append("GOOGLE_APPLICATION_CREDENTIALS_JSON is not set; relying on ambient ADC credentials")
    return errors, warnings


def validate_startup_env() -> None:
    errors, warnings = collect_env_problems(os.environ)
    if errors:
        for err in errors:
            logger.error("startup_env_invalid %s", err)
        raise RuntimeError("Startup env validation failed: " + "; ".join(errors))

    for warning in warnings:
        logger.warning("startup_env_warning %s", warning)
    logger.info("startup_env_validated keys=%s", list(REQUIRED_KEYS))
