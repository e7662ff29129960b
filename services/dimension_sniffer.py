# User value: This file reads image width/height from raw bytes so oversized photos are caught before upload.
import struct
from dataclasses import dataclass
from typing import Optional

JPEG_SCAN_LIMIT = 100_000

_JPEG_SIGNATURE = b"\xff\xd8\xff"
_PNG_SIGNATURE = b"\x89PNG"
_GIF_SIGNATURE = b"GIF"
_JPEG_SOF_MARKERS = (0xC0, 0xC1)


@dataclass(frozen=True)
class ImageDimensions:
    width: int
    height: int

    @property
    def total_px(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class SniffResult:
    dimensions: Optional[ImageDimensions] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.dimensions is not None


def _fail(reason: str) -> SniffResult:
    return SniffResult(dimensions=None, reason=reason)


# Scans byte by byte instead of walking segment lengths, so SOF-looking
# bytes inside EXIF/ICC payloads can be picked up first.
def _sniff_jpeg(data: bytes) -> SniffResult:
    end = min(len(data), JPEG_SCAN_LIMIT)
    i = 2
    while i < end - 1:
        if data[i] == 0xFF and data[i + 1] in _JPEG_SOF_MARKERS and i + 8 < len(data):
            height, width = struct.unpack_from(">HH", data, i + 5)
            return SniffResult(dimensions=ImageDimensions(width=width, height=height))
        i += 1
    return _fail("jpeg_sof_not_found")


def _sniff_png(data: bytes) -> SniffResult:
    if len(data) < 24:
        return _fail("truncated_header")
    width, height = struct.unpack_from(">II", data, 16)
    return SniffResult(dimensions=ImageDimensions(width=width, height=height))


def _sniff_gif(data: bytes) -> SniffResult:
    if len(data) < 10:
        return _fail("truncated_header")
    width, height = struct.unpack_from("<HH", data, 6)
    return SniffResult(dimensions=ImageDimensions(width=width, height=height))


# User value: explains why dimensions could not be read so failures stay diagnosable.
def sniff_dimensions_result(data) -> SniffResult:
    try:
        blob = bytes(data or b"")
        if not blob:
            return _fail("empty")
        if blob.startswith(_JPEG_SIGNATURE):
            return _sniff_jpeg(blob)
        if blob.startswith(_PNG_SIGNATURE):
            return _sniff_png(blob)
        if blob.startswith(_GIF_SIGNATURE):
            return _sniff_gif(blob)
        return _fail("unknown_signature")
    except (TypeError, ValueError, struct.error) as exc:
        return _fail(f"parse_error:{exc.__class__.__name__}")


def sniff_dimensions(data) -> Optional[ImageDimensions]:
    return sniff_dimensions_result(data).dimensions
