import unittest
from unittest.mock import patch

import requests

from services.usage_client import UsageFetchError, fetch_usage_limits, parse_usage_payload

USAGE_PAYLOAD = {
    "plan": "Free",
    "media_limits": {
        "image_max_size_bytes": 10485760,
        "video_max_size_bytes": 104857600,
        "raw_max_size_bytes": 10485760,
        "image_max_px": 25000000,
        "asset_max_total_px": 50000000,
    },
    "rate_limit_allowed": 500,
    "rate_limit_remaining": 498,
}


class FakeResponse:
    def __init__(self, payload=None, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error:
            raise self._status_error

    def json(self):
        if self._json_error:
            raise self._json_error
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


class UsageClientUnitTests(unittest.TestCase):
    def test_parse_usage_payload(self):
        out = parse_usage_payload(USAGE_PAYLOAD)
        self.assertEqual(out["image_max_size_bytes"], 10485760)
        self.assertEqual(out["rate_limit_remaining"], 498)
        self.assertEqual(len(out), 7)

    def test_parse_rejects_missing_media_limits(self):
        with self.assertRaises(UsageFetchError):
            parse_usage_payload({"rate_limit_allowed": 1, "rate_limit_remaining": 1})

    def test_parse_rejects_non_numeric_field(self):
        payload = dict(USAGE_PAYLOAD, rate_limit_remaining="lots")
        with self.assertRaises(UsageFetchError):
            parse_usage_payload(payload)

    def test_fetch_uses_timeout_and_auth(self):
        session = FakeSession(response=FakeResponse(USAGE_PAYLOAD))
        with patch("services.usage_client.MEDIA_USAGE_URL", "https://usage.example.test/usage"):
            out = fetch_usage_limits(session=session)
        self.assertEqual(out["video_max_size_bytes"], 104857600)
        url, kwargs = session.calls[0]
        self.assertEqual(url, "https://usage.example.test/usage")
        self.assertIn("timeout", kwargs)
        self.assertIn("auth", kwargs)

    def test_transport_error_is_typed(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        with patch("services.usage_client.MEDIA_USAGE_URL", "https://usage.example.test/usage"):
            with self.assertRaises(UsageFetchError):
                fetch_usage_limits(session=session)

    def test_invalid_json_is_typed(self):
        session = FakeSession(response=FakeResponse(json_error=ValueError("no json")))
        with patch("services.usage_client.MEDIA_USAGE_URL", "https://usage.example.test/usage"):
            with self.assertRaises(UsageFetchError):
                fetch_usage_limits(session=session)

    def test_missing_endpoint_config(self):
        with patch("services.usage_client.MEDIA_USAGE_URL", ""), patch("services.usage_client.MEDIA_CLOUD_NAME", ""):
            with self.assertRaises(UsageFetchError):
                fetch_usage_limits(session=FakeSession())


if __name__ == "__main__":
    unittest.main()
