import struct
from io import BytesIO

from PIL import Image

from services.media_limits import MB, MediaLimits


def make_limits(**overrides) -> MediaLimits:
    values = {
        "image_max_size_bytes": 10 * MB,
        "video_max_size_bytes": 100 * MB,
        "raw_max_size_bytes": 10 * MB,
        "image_max_px": 25_000_000,
        "asset_max_total_px": 50_000_000,
        "rate_limit_allowed": 500,
        "rate_limit_remaining": 500,
    }
    values.update(overrides)
    return MediaLimits(**values)


def png_header(width: int, height: int) -> bytes:
    ihdr = struct.pack(">II", width, height) + b"\x08\x02\x00\x00\x00"
    return b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\x0dIHDR" + ihdr + b"\x00\x00\x00\x00"


def jpeg_header(width: int, height: int, padding: int = 16) -> bytes:
    app0 = b"\xff\xe0" + struct.pack(">H", padding + 2) + b"\x00" * padding
    sof = b"\xff\xc0\x00\x11\x08" + struct.pack(">HH", height, width) + b"\x03\x01\x22\x00"
    return b"\xff\xd8" + app0 + sof + b"\x00" * 8


def gif_header(width: int, height: int) -> bytes:
    return b"GIF89a" + struct.pack("<HH", width, height) + b"\x00\x00\x00"


def noisy_image(size=(256, 256), mode="RGB", seed: int = 7) -> Image.Image:
    import random

    rnd = random.Random(seed)
    channels = len(mode)
    raw = bytes(rnd.getrandbits(8) for _ in range(size[0] * size[1] * channels))
    return Image.frombytes(mode, size, raw)


def encode(img: Image.Image, fmt: str, **params) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format=fmt, **params)
    return buffer.getvalue()
