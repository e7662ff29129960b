# User value: This file keeps one shared copy of the provider upload limits so every file in a batch is judged the same way.
# A failed fetch falls back to free-tier defaults and is never stored, so the next call tries again.
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Tuple

from services.usage_client import fetch_usage_limits

logger = logging.getLogger("api.limits")

MB = 1024 * 1024
MEDIA_LIMITS_CACHE_TTL_SEC = float(os.getenv("MEDIA_LIMITS_CACHE_TTL_SEC", "300"))


@dataclass(frozen=True)
class MediaLimits:
    image_max_size_bytes: int
    video_max_size_bytes: int
    raw_max_size_bytes: int
    image_max_px: int
    asset_max_total_px: int
    rate_limit_allowed: int
    rate_limit_remaining: int

    def percentage_remaining(self) -> int:
        if self.rate_limit_allowed <= 0:
            return 0
        return round(self.rate_limit_remaining / self.rate_limit_allowed * 100)

    def to_dict(self) -> dict:
        return asdict(self)


FALLBACK_MEDIA_LIMITS = MediaLimits(
    image_max_size_bytes=10 * MB,
    video_max_size_bytes=100 * MB,
    raw_max_size_bytes=10 * MB,
    image_max_px=25_000_000,
    asset_max_total_px=50_000_000,
    rate_limit_allowed=500,
    rate_limit_remaining=500,
)


def _fetch_remote_limits() -> MediaLimits:
    return MediaLimits(**fetch_usage_limits())


class LimitsCache:
    """Memoizes one MediaLimits snapshot for ``ttl_sec`` seconds.

    ``fetcher`` returns a fresh MediaLimits or raises; ``clock`` returns
    monotonic seconds. Both are injectable so tests can drive time and
    failures deterministically.
    """

    def __init__(
        self,
        fetcher: Callable[[], MediaLimits],
        clock: Callable[[], float] = time.monotonic,
        ttl_sec: float = MEDIA_LIMITS_CACHE_TTL_SEC,
    ):
        self._fetcher = fetcher
        self._clock = clock
        self._ttl_sec = ttl_sec
        self._lock = threading.Lock()
        self._entry: Optional[Tuple[MediaLimits, float]] = None

    def _fresh_entry(self, now: float) -> Optional[MediaLimits]:
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        limits, fetched_at = entry
        if now - fetched_at < self._ttl_sec:
            return limits
        return None

    def get_limits(self) -> MediaLimits:
        now = self._clock()
        cached = self._fresh_entry(now)
        if cached is not None:
            return cached

        try:
            limits = self._fetcher()
        except Exception as exc:
            logger.error(
                "media_limits_fetch_failed error=%s: %s using_fallback=true",
                exc.__class__.__name__,
                exc,
            )
            return FALLBACK_MEDIA_LIMITS

        with self._lock:
            self._entry = (limits, now)
        logger.info(
            "media_limits_cached image_max=%s video_max=%s rate_remaining=%s ttl_sec=%s",
            limits.image_max_size_bytes,
            limits.video_max_size_bytes,
            limits.rate_limit_remaining,
            self._ttl_sec,
        )
        return limits

    def clear_cache(self) -> None:
        with self._lock:
            self._entry = None


limits_cache = LimitsCache(fetcher=_fetch_remote_limits)


def get_media_limits() -> MediaLimits:
    return limits_cache.get_limits()


def clear_limits_cache() -> None:
    limits_cache.clear_cache()
