# User value: This file reads the media provider's current account limits so uploads are checked against real quotas.
import logging
import os

import requests

logger = logging.getLogger("api.usage")

MEDIA_CLOUD_NAME = os.getenv("MEDIA_CLOUD_NAME", "")
MEDIA_API_KEY = os.getenv("MEDIA_API_KEY", "")
MEDIA_API_SECRET = os.getenv("MEDIA_API_SECRET", "")
MEDIA_USAGE_URL = os.getenv("MEDIA_USAGE_URL", "")
MEDIA_USAGE_TIMEOUT_SEC = float(os.getenv("MEDIA_USAGE_TIMEOUT_SEC", "10"))

_LIMIT_FIELDS = (
    "image_max_size_bytes",
    "video_max_size_bytes",
    "raw_max_size_bytes",
    "image_max_px",
    "asset_max_total_px",
)


class UsageFetchError(RuntimeError):
    pass


def _usage_url() -> str:
    if MEDIA_USAGE_URL:
        return MEDIA_USAGE_URL
    if not MEDIA_CLOUD_NAME:
        raise UsageFetchError("MEDIA_CLOUD_NAME not set")
    return f"https://api.cloudinary.com/v1_1/{MEDIA_CLOUD_NAME}/usage"


def _int_field(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or value is None:
        raise UsageFetchError(f"usage response missing {key}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise UsageFetchError(f"usage response has invalid {key}: {value!r}") from exc


# User value: converts the provider usage report into the limits every upload is checked against.
def parse_usage_payload(payload) -> dict:
    if not isinstance(payload, dict):
        raise UsageFetchError("usage response is not an object")
    media_limits = payload.get("media_limits")
    if not isinstance(media_limits, dict):
        raise UsageFetchError("usage response missing media_limits")

    out = {key: _int_field(media_limits, key) for key in _LIMIT_FIELDS}
    out["rate_limit_allowed"] = _int_field(payload, "rate_limit_allowed")
    out["rate_limit_remaining"] = _int_field(payload, "rate_limit_remaining")
    return out


def _optional_number(section, key: str, cast=int):
    value = section.get(key) if isinstance(section, dict) else None
    if value is None or isinstance(value, bool):
        return cast(0)
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise UsageFetchError(f"usage response has invalid {key}: {value!r}") from exc


# User value: turns the provider usage report into storage numbers admins can act on before the quota runs out.
def parse_storage_usage(payload) -> dict:
    if not isinstance(payload, dict):
        raise UsageFetchError("usage response is not an object")
    credits = payload.get("credits")
    return {
        "used_bytes": _optional_number(payload.get("storage"), "usage"),
        "plan": str(payload.get("plan") or "Unknown"),
        "last_updated": str(payload.get("last_updated") or ""),
        "credits_used": _optional_number(credits, "usage", float),
        "credits_limit": _optional_number(credits, "limit", float),
        "credits_used_percent": _optional_number(credits, "used_percent", float),
        "bandwidth_bytes": _optional_number(payload.get("bandwidth"), "usage"),
        "objects": _optional_number(payload.get("objects"), "usage"),
        "resources": _optional_number(payload, "resources"),
        "derived_resources": _optional_number(payload, "derived_resources"),
        "requests": _optional_number(payload, "requests"),
    }


def _get_usage_payload(session=None):
    http = session or requests
    url = _usage_url()
    try:
        resp = http.get(
            url,
            auth=(MEDIA_API_KEY, MEDIA_API_SECRET),
            timeout=MEDIA_USAGE_TIMEOUT_SEC,
        )
        resp.raise_for_status()
        payload = resp.json()
    except requests.RequestException as exc:
        raise UsageFetchError(f"usage request failed: {exc.__class__.__name__}: {exc}") from exc
    except ValueError as exc:
        raise UsageFetchError("usage response is not valid JSON") from exc
    return payload


# User value: asks the provider for the current limits with a bounded wait so uploads never hang on it.
def fetch_usage_limits(session=None) -> dict:
    limits = parse_usage_payload(_get_usage_payload(session))
    logger.info(
        "usage_fetched image_max=%s video_max=%s rate_remaining=%s",
        limits["image_max_size_bytes"],
        limits["video_max_size_bytes"],
        limits["rate_limit_remaining"],
    )
    return limits


def fetch_storage_usage(session=None) -> dict:
    usage = parse_storage_usage(_get_usage_payload(session))
    logger.info("storage_usage_fetched used_bytes=%s plan=%s", usage["used_bytes"], usage["plan"])
    return usage
