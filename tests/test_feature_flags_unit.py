# User value: This file verifies feature-flag safety so admins get predictable upload behaviour.
import importlib
import os
import unittest

import startup_env


class FeatureFlagsUnitTests(unittest.TestCase):
    def setUp(self):
        self._old = os.environ.get("COMPRESS_IMAGES")

    def tearDown(self):
        if self._old is None:
            os.environ.pop("COMPRESS_IMAGES", None)
        else:
            os.environ["COMPRESS_IMAGES"] = self._old
        import services.feature_flags as ff

        importlib.reload(ff)

    # User value: confirms explicit enablement turns on automatic recompression of oversized photos.
    def test_compress_images_flag_enabled(self):
        os.environ["COMPRESS_IMAGES"] = "true"
        import services.feature_flags as ff

        ff = importlib.reload(ff)
        self.assertTrue(ff.is_image_compression_enabled())

    # User value: confirms the default/disabled path rejects oversized photos instead of altering them.
    def test_compress_images_flag_disabled(self):
        os.environ["COMPRESS_IMAGES"] = "0"
        import services.feature_flags as ff

        ff = importlib.reload(ff)
        self.assertFalse(ff.is_image_compression_enabled())

    # User value: prevents bad deploy config from silently disabling compression.
    def test_validate_bool_flag_env_rejects_invalid(self):
        errors = []
        os.environ["COMPRESS_IMAGES"] = "maybe"
        startup_env._validate_bool_flag_env("COMPRESS_IMAGES", errors)
        self.assertTrue(errors)
        self.assertIn("COMPRESS_IMAGES must be one of", errors[0])

    def test_validate_bool_flag_env_accepts_known_values(self):
        errors = []
        for value in ("true", "FALSE", "1", "off"):
            os.environ["COMPRESS_IMAGES"] = value
            startup_env._validate_bool_flag_env("COMPRESS_IMAGES", errors)
        self.assertEqual(errors, [])


class StartupEnvUnitTests(unittest.TestCase):
    BASE_ENV = {
        "GOOGLE_CLIENT_ID": "client-id",
        "GCS_BUCKET_NAME": "media-bucket",
        "REDIS_URL": "redis://localhost:6379/0",
        "CORS_ALLOW_ORIGINS": "https://admin.example.com",
    }

    def setUp(self):
        self._saved = {k: os.environ.get(k) for k in list(self.BASE_ENV) + ["MEDIA_LIMITS_CACHE_TTL_SEC"]}
        os.environ.update(self.BASE_ENV)

    def tearDown(self):
        for key, value in self._saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def test_valid_env_passes(self):
        startup_env.validate_startup_env()

    def test_wildcard_cors_is_rejected(self):
        os.environ["CORS_ALLOW_ORIGINS"] = "*"
        with self.assertRaises(RuntimeError):
            startup_env.validate_startup_env()

    def test_non_positive_cache_ttl_is_rejected(self):
        os.environ["MEDIA_LIMITS_CACHE_TTL_SEC"] = "0"
        with self.assertRaises(RuntimeError) as ctx:
            startup_env.validate_startup_env()
        self.assertIn("MEDIA_LIMITS_CACHE_TTL_SEC", str(ctx.exception))

    def test_collect_env_problems_reports_missing_keys_and_warnings(self):
        errors, warnings = startup_env.collect_env_problems({"REDIS_URL": "http://cache:6379"})
        self.assertIn("GOOGLE_CLIENT_ID is required", errors)
        self.assertIn("REDIS_URL must start with redis:// or rediss://", errors)
        self.assertTrue(any("fallback media limits" in w for w in warnings))


if __name__ == "__main__":
    unittest.main()
