# User value: This file decides whether each uploaded photo/video fits the provider limits and says why when it does not.
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from schemas.media_contract import (
    ALLOWED_MIME_TYPES,
    ERROR_FILE_TOO_LARGE,
    ERROR_INVALID_DIMENSIONS,
    ERROR_RATE_LIMIT_EXCEEDED,
    ERROR_UNSUPPORTED_TYPE,
    ERROR_VALIDATION_ERROR,
    MEDIA_KIND_IMAGE,
    MEDIA_KIND_VIDEO,
    RATE_LIMIT_FLOOR,
)
from services.dimension_sniffer import sniff_dimensions_result
from services.media_limits import MB, MediaLimits, get_media_limits

logger = logging.getLogger("api.validation")


@dataclass(frozen=True)
class CandidateFile:
    data: bytes = field(repr=False)
    mime_type: str
    name: str
    size_bytes: int = -1

    def __post_init__(self):
        if self.size_bytes < 0:
            object.__setattr__(self, "size_bytes", len(self.data))

    @property
    def media_kind(self) -> str:
        return media_kind_for(self.mime_type)


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    code: Optional[str] = None
    message: Optional[str] = None
    should_compress: bool = False
    suggestion: Optional[str] = None


VALID = ValidationOutcome(valid=True)


def media_kind_for(mime_type: str | None) -> str:
    mime = str(mime_type or "").strip().lower()
    return MEDIA_KIND_IMAGE if mime.startswith("image/") else MEDIA_KIND_VIDEO


def _mb(size_bytes: int) -> str:
    return f"{size_bytes / MB:g}"


def _invalid(code: str, message: str, suggestion: str | None = None, should_compress: bool = False) -> ValidationOutcome:
    return ValidationOutcome(
        valid=False,
        code=code,
        message=message,
        should_compress=should_compress,
        suggestion=suggestion,
    )


# Also re-run on recompressed bytes, whose oversize original never reached this check.
def check_image_dimensions(data: bytes, limits: MediaLimits, name: str = "") -> ValidationOutcome:
    sniffed = sniff_dimensions_result(data)
    if not sniffed.ok:
        logger.debug("image_dimensions_unknown name=%s reason=%s", name, sniffed.reason)
        return VALID

    dims = sniffed.dimensions
    if dims.width > limits.image_max_px:
        return _invalid(
            ERROR_INVALID_DIMENSIONS,
            f"Image width exceeds limit ({dims.width}px > {limits.image_max_px}px)",
        )
    if dims.height > limits.image_max_px:
        return _invalid(
            ERROR_INVALID_DIMENSIONS,
            f"Image height exceeds limit ({dims.height}px > {limits.image_max_px}px)",
        )
    if dims.total_px > limits.asset_max_total_px:
        return _invalid(
            ERROR_INVALID_DIMENSIONS,
            f"Image total pixels exceed limit ({dims.total_px}px > {limits.asset_max_total_px}px)",
            suggestion="Consider uploading at lower resolution",
        )
    return VALID


def _validate(file: CandidateFile, media_kind: str, limits: MediaLimits) -> ValidationOutcome:
    mime = str(file.mime_type or "").strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        return _invalid(
            ERROR_UNSUPPORTED_TYPE,
            "Unsupported file type",
            suggestion="Supported types: JPEG, PNG, GIF (images) or MP4, MOV, WebM (videos)",
        )

    if limits.rate_limit_remaining < RATE_LIMIT_FLOOR:
        return _invalid(
            ERROR_RATE_LIMIT_EXCEEDED,
            "Rate limit nearly exceeded",
            suggestion="Try again in a few minutes",
        )

    if media_kind == MEDIA_KIND_IMAGE:
        max_size = limits.image_max_size_bytes
        if file.size_bytes > max_size:
            return _invalid(
                ERROR_FILE_TOO_LARGE,
                f"Image too large (max {_mb(max_size)}MB, got {file.size_bytes / MB:.2f}MB)",
                suggestion=f"Image will be automatically compressed to under {_mb(max_size)}MB",
                should_compress=True,
            )
        return check_image_dimensions(file.data, limits, file.name)

    if media_kind == MEDIA_KIND_VIDEO:
        max_size = limits.video_max_size_bytes
        if file.size_bytes > max_size:
            return _invalid(
                ERROR_FILE_TOO_LARGE,
                f"Video too large (max {_mb(max_size)}MB, got {file.size_bytes / MB:.2f}MB)",
                suggestion="Consider compressing the video or reducing resolution",
            )

    return VALID


# User value: returns a clear accept/reject decision per file so one bad file never blocks the rest of a batch.
def validate_media_file(
    file: CandidateFile,
    media_kind: str,
    *,
    limits_provider: Callable[[], MediaLimits] | None = None,
) -> ValidationOutcome:
    try:
        limits = (limits_provider or get_media_limits)()
        outcome = _validate(file, media_kind, limits)
    except Exception as exc:
        logger.exception("media_validation_error name=%s error=%s", file.name, exc.__class__.__name__)
        return _invalid(ERROR_VALIDATION_ERROR, "Validation failed")

    if not outcome.valid:
        logger.info(
            "media_validation_rejected name=%s kind=%s code=%s should_compress=%s",
            file.name,
            media_kind,
            outcome.code,
            outcome.should_compress,
        )
    return outcome
