# User value: This test keeps automatic compression bounded so oversized photos are rescued without hanging uploads.
import unittest
from unittest.mock import patch

from services.image_compression import (
    MAX_ATTEMPTS,
    MIN_QUALITY,
    START_QUALITY,
    compress_image,
    get_target_compression_size,
    next_quality,
    should_compress_image,
)
from services.media_limits import MB
from tests.helpers import encode, noisy_image


class ImageCompressionUnitTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.noise = noisy_image(size=(256, 256))
        cls.jpeg_q100 = encode(cls.noise, "JPEG", quality=100)
        cls.png = encode(cls.noise, "PNG")
        cls.gif = encode(cls.noise, "GIF")
        cls.webp = encode(cls.noise, "WEBP", lossless=True)

    def test_target_size_helpers(self):
        self.assertEqual(get_target_compression_size(10 * MB), 8 * MB)
        self.assertEqual(get_target_compression_size(), int(10 * MB * 0.8))
        self.assertTrue(should_compress_image(9 * MB, 10 * MB))
        self.assertFalse(should_compress_image(8 * MB, 10 * MB))

    def test_quality_steps_down_to_floor(self):
        self.assertEqual(next_quality(85), 70)
        self.assertEqual(next_quality(25), MIN_QUALITY)
        self.assertEqual(next_quality(MIN_QUALITY), MIN_QUALITY)

    def test_under_target_is_returned_unchanged(self):
        out = compress_image(self.jpeg_q100, target_size_bytes=len(self.jpeg_q100))
        self.assertIs(out.data, self.jpeg_q100)
        self.assertEqual(out.ratio, 1.0)
        self.assertEqual(out.compressed_size_bytes, out.original_size_bytes)
        self.assertEqual(out.format, "jpeg")
        self.assertEqual((out.width, out.height), (256, 256))
        self.assertEqual(out.attempts, ())

    def test_jpeg_converges_below_target(self):
        target = len(self.jpeg_q100) // 2
        out = compress_image(self.jpeg_q100, target_size_bytes=target)
        self.assertLessEqual(out.compressed_size_bytes, target)
        self.assertEqual(out.compressed_size_bytes, len(out.data))
        self.assertGreater(out.ratio, 1.0)
        self.assertTrue(out.data.startswith(b"\xff\xd8\xff"))
        self.assertEqual((out.width, out.height), (256, 256))
        self.assertLessEqual(len(out.attempts), MAX_ATTEMPTS)

    def test_unreachable_target_stops_after_attempt_budget(self):
        out = compress_image(self.jpeg_q100, target_size_bytes=1)
        qualities = [a.quality for a in out.attempts]
        self.assertEqual(len(qualities), MAX_ATTEMPTS)
        self.assertEqual(qualities[0], START_QUALITY)
        self.assertEqual(qualities, sorted(qualities, reverse=True))
        self.assertTrue(all(q >= MIN_QUALITY for q in qualities))
        self.assertLess(out.compressed_size_bytes, out.original_size_bytes)

    def test_png_stays_png(self):
        out = compress_image(self.png, target_size_bytes=1)
        self.assertEqual(out.format, "png")
        self.assertTrue(out.data.startswith(b"\x89PNG"))
        self.assertLess(out.compressed_size_bytes, len(self.png))

    def test_webp_stays_webp(self):
        out = compress_image(self.webp, target_size_bytes=1)
        self.assertEqual(out.format, "webp")
        self.assertEqual(out.data[:4], b"RIFF")
        self.assertEqual(out.data[8:12], b"WEBP")
        self.assertLess(out.compressed_size_bytes, len(self.webp))
        self.assertEqual(len(out.attempts), MAX_ATTEMPTS)

    def test_png_with_alpha_is_quantized_without_error(self):
        data = encode(noisy_image(size=(128, 128), mode="LA"), "PNG")
        out = compress_image(data, target_size_bytes=1)
        self.assertEqual(out.format, "png")
        self.assertTrue(out.data.startswith(b"\x89PNG"))

    def test_gif_is_reencoded_as_jpeg(self):
        out = compress_image(self.gif, target_size_bytes=1)
        self.assertEqual(out.format, "gif")
        self.assertTrue(out.data.startswith(b"\xff\xd8\xff"))

    def test_undecodable_input_is_returned_as_is(self):
        data = b"definitely not an image" * 100
        out = compress_image(data, target_size_bytes=10)
        self.assertIs(out.data, data)
        self.assertEqual(out.ratio, 1.0)
        self.assertEqual(out.format, "unknown")

    def test_every_attempt_failing_falls_back_to_original(self):
        with patch("services.image_compression.encode_at_quality", side_effect=OSError("encoder exploded")):
            out = compress_image(self.jpeg_q100, target_size_bytes=1)
        self.assertIs(out.data, self.jpeg_q100)
        self.assertEqual(out.ratio, 1.0)
        self.assertEqual(out.format, "unknown")
        self.assertEqual(len(out.attempts), MAX_ATTEMPTS)
        self.assertTrue(all(a.size_bytes is None for a in out.attempts))

    def test_failed_attempt_does_not_abort_the_loop(self):
        real = __import__("services.image_compression", fromlist=["encode_at_quality"]).encode_at_quality
        calls = []

        def flaky(data, fmt, quality):
            calls.append(quality)
            if len(calls) == 1:
                raise OSError("first attempt fails")
            return real(data, fmt, quality)

        target = len(self.jpeg_q100) // 2
        with patch("services.image_compression.encode_at_quality", side_effect=flaky):
            out = compress_image(self.jpeg_q100, target_size_bytes=target)
        self.assertIsNone(out.attempts[0].size_bytes)
        self.assertEqual(calls[:2], [85, 70])
        self.assertLessEqual(out.compressed_size_bytes, target)


if __name__ == "__main__":
    unittest.main()
