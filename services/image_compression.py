# User value: This file shrinks oversized photos so admins can upload them instead of being told to resize by hand.
# Re-encodes at decreasing quality until the output fits the target or the attempt budget runs out.
# The result is not guaranteed to fit; callers re-check the final size against the hard ceiling.
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from services.media_limits import MB

logger = logging.getLogger("api.compression")

DEFAULT_TARGET_SIZE_BYTES = 8 * MB
TARGET_RATIO = 0.8

START_QUALITY = 85
QUALITY_STEP = 15
MIN_QUALITY = 20
PNG_MIN_QUALITY = 70
MAX_ATTEMPTS = 5

UNKNOWN_FORMAT = "unknown"


@dataclass(frozen=True)
class CompressionAttempt:
    quality: int
    size_bytes: Optional[int]


@dataclass(frozen=True)
class CompressionOutcome:
    data: bytes = field(repr=False)
    original_size_bytes: int
    compressed_size_bytes: int
    ratio: float
    format: str
    width: Optional[int] = None
    height: Optional[int] = None
    attempts: Tuple[CompressionAttempt, ...] = ()


def get_target_compression_size(image_max_size_bytes: int = 10 * MB) -> int:
    return int(image_max_size_bytes * TARGET_RATIO)


def should_compress_image(size_bytes: int, image_max_size_bytes: int = 10 * MB) -> bool:
    return size_bytes > image_max_size_bytes * TARGET_RATIO


def next_quality(quality: int) -> int:
    return max(MIN_QUALITY, quality - QUALITY_STEP)


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode == "RGB":
        return img
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return img.convert("RGB")


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buffer = BytesIO()
    _to_rgb(img).save(buffer, format="JPEG", quality=quality, progressive=True, optimize=True)
    return buffer.getvalue()


def _encode_png(img: Image.Image, quality: int) -> bytes:
    png_quality = max(PNG_MIN_QUALITY, quality - 10)
    colors = max(16, min(256, int(256 * png_quality / 100)))
    source = img if img.mode in ("RGB", "RGBA") else img.convert("RGBA")
    quantized = source.quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
    buffer = BytesIO()
    quantized.save(buffer, format="PNG", compress_level=9, optimize=True)
    return buffer.getvalue()


def _encode_webp(img: Image.Image, quality: int) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format="WEBP", quality=quality)
    return buffer.getvalue()


def encode_at_quality(data: bytes, fmt: str, quality: int) -> bytes:
    with Image.open(BytesIO(data)) as img:
        img.load()
        if fmt == "png":
            return _encode_png(img, quality)
        if fmt == "webp":
            return _encode_webp(img, quality)
        # jpeg, gif and anything unrecognised become progressive JPEG
        return _encode_jpeg(img, quality)


def _probe(data: bytes) -> Tuple[str, int, int]:
    with Image.open(BytesIO(data)) as img:
        return (img.format or "jpeg").lower(), img.width, img.height


def _unchanged(data: bytes, fmt: str, width=None, height=None, attempts=()) -> CompressionOutcome:
    size = len(data)
    return CompressionOutcome(
        data=data,
        original_size_bytes=size,
        compressed_size_bytes=size,
        ratio=1.0,
        format=fmt,
        width=width,
        height=height,
        attempts=tuple(attempts),
    )


def compress_image(data: bytes, target_size_bytes: int = DEFAULT_TARGET_SIZE_BYTES) -> CompressionOutcome:
    original_size = len(data)
    try:
        fmt, width, height = _probe(data)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.error("compression_probe_failed size=%s error=%s: %s", original_size, exc.__class__.__name__, exc)
        return _unchanged(data, UNKNOWN_FORMAT)

    if original_size <= target_size_bytes:
        return _unchanged(data, fmt, width, height)

    quality = START_QUALITY
    best: Optional[bytes] = None
    attempts = []

    for _ in range(MAX_ATTEMPTS):
        try:
            candidate = encode_at_quality(data, fmt, quality)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            logger.warning("compression_attempt_failed format=%s quality=%s error=%s: %s", fmt, quality, exc.__class__.__name__, exc)
            attempts.append(CompressionAttempt(quality=quality, size_bytes=None))
            quality = next_quality(quality)
            continue

        attempts.append(CompressionAttempt(quality=quality, size_bytes=len(candidate)))
        if best is None or len(candidate) < len(best):
            best = candidate
        if len(candidate) <= target_size_bytes:
            break
        quality = next_quality(quality)

    if best is None:
        logger.error("compression_failed format=%s attempts=%s", fmt, len(attempts))
        return _unchanged(data, UNKNOWN_FORMAT, attempts=attempts)

    try:
        _, out_width, out_height = _probe(best)
    except (UnidentifiedImageError, OSError, ValueError):
        out_width, out_height = None, None

    compressed_size = len(best)
    outcome = CompressionOutcome(
        data=best,
        original_size_bytes=original_size,
        compressed_size_bytes=compressed_size,
        ratio=original_size / compressed_size if compressed_size else 1.0,
        format=fmt,
        width=out_width,
        height=out_height,
        attempts=tuple(attempts),
    )
    logger.info(
        "compression_done format=%s original_mb=%.2f compressed_mb=%.2f ratio=%.2f attempts=%s",
        fmt,
        original_size / MB,
        compressed_size / MB,
        outcome.ratio,
        len(attempts),
    )
    return outcome
