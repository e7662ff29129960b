# User value: This test keeps the storage health signal honest so admins clear space before uploads fail.
import unittest
from unittest.mock import patch

from fastapi import HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError

from routes.storage_usage import storage_usage
from services.storage_usage import GB, build_storage_report, storage_status
from services.usage_client import UsageFetchError, parse_storage_usage

ADMIN = {"email": "admin@example.com", "admin_id": "admin@example.com"}

PROVIDER_PAYLOAD = {
    "plan": "Free",
    "last_updated": "2026-10-17",
    "storage": {"usage": 21 * GB},
    "bandwidth": {"usage": 3 * GB},
    "objects": {"usage": 420},
    "credits": {"usage": 7.5, "limit": 25, "used_percent": 30.0},
    "resources": 400,
    "derived_resources": 20,
    "requests": 1234,
    "media_limits": {"image_max_size_bytes": 10},
}


def _usage(used_bytes: int) -> dict:
    return {"used_bytes": used_bytes, "plan": "Free"}


class StorageStatusUnitTests(unittest.TestCase):
    def test_thresholds_are_exclusive(self):
        cases = [
            (0.0, "ok"),
            (80.0, "ok"),
            (80.01, "warning"),
            (95.0, "warning"),
            (95.01, "critical"),
            (120.0, "critical"),
        ]
        for percent, expected in cases:
            with self.subTest(percent=percent):
                self.assertEqual(storage_status(percent)[0], expected)

    def test_recommendation_matches_status(self):
        self.assertEqual(storage_status(10)[1], "Storage usage is normal")
        self.assertIn("within a week", storage_status(85)[1])
        self.assertIn("immediately", storage_status(99)[1])


class StorageReportUnitTests(unittest.TestCase):
    def test_report_for_each_band(self):
        for used_gb, percent, status in ((20, 80.0, "ok"), (21, 84.0, "warning"), (24, 96.0, "critical")):
            with self.subTest(used_gb=used_gb):
                report = build_storage_report(_usage(used_gb * GB), total_folders=3, total_files=40, quota_gb=25)
                self.assertEqual(report["currentGb"], used_gb)
                self.assertEqual(report["percentUsed"], percent)
                self.assertEqual(report["status"], status)
                self.assertEqual(report["totalFolders"], 3)
                self.assertEqual(report["totalFiles"], 40)
                self.assertEqual(report["bytesUsed"], used_gb * GB)

    def test_zero_quota_reports_ok(self):
        report = build_storage_report(_usage(GB), total_folders=0, total_files=0, quota_gb=0)
        self.assertEqual(report["percentUsed"], 0.0)
        self.assertEqual(report["status"], "ok")


class ParseStorageUsageUnitTests(unittest.TestCase):
    def test_extracts_storage_fields(self):
        usage = parse_storage_usage(PROVIDER_PAYLOAD)
        self.assertEqual(usage["used_bytes"], 21 * GB)
        self.assertEqual(usage["plan"], "Free")
        self.assertEqual(usage["bandwidth_bytes"], 3 * GB)
        self.assertEqual(usage["objects"], 420)
        self.assertEqual(usage["credits_limit"], 25.0)
        self.assertEqual(usage["derived_resources"], 20)

    def test_missing_sections_default_to_zero(self):
        usage = parse_storage_usage({})
        self.assertEqual(usage["used_bytes"], 0)
        self.assertEqual(usage["plan"], "Unknown")

    def test_garbage_values_are_rejected(self):
        with self.assertRaises(UsageFetchError):
            parse_storage_usage({"storage": {"usage": "lots"}})
        with self.assertRaises(UsageFetchError):
            parse_storage_usage(["not", "an", "object"])


class StorageUsageRouteUnitTests(unittest.TestCase):
    def test_route_combines_provider_usage_with_store_counts(self):
        with patch("routes.storage_usage.fetch_storage_usage", return_value=parse_storage_usage(PROVIDER_PAYLOAD)), patch(
            "routes.storage_usage.count_folders", return_value=5
        ), patch("routes.storage_usage.count_media", return_value=77):
            out = storage_usage(admin=ADMIN)
        self.assertEqual(out.totalFolders, 5)
        self.assertEqual(out.totalFiles, 77)
        self.assertEqual(out.status, "warning")
        self.assertEqual(out.provider.plan, "Free")
        self.assertEqual(out.provider.requests, 1234)

    def test_provider_failure_is_502(self):
        with patch("routes.storage_usage.fetch_storage_usage", side_effect=UsageFetchError("down")):
            with self.assertRaises(HTTPException) as ctx:
                storage_usage(admin=ADMIN)
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.detail["error_code"], "USAGE_FETCH_ERROR")

    def test_store_failure_is_503(self):
        with patch("routes.storage_usage.fetch_storage_usage", return_value=_usage(0)), patch(
            "routes.storage_usage.count_folders", side_effect=RedisConnectionError("down")
        ):
            with self.assertRaises(HTTPException) as ctx:
                storage_usage(admin=ADMIN)
        self.assertEqual(ctx.exception.status_code, 503)


if __name__ == "__main__":
    unittest.main()
