import unittest
from types import SimpleNamespace

from utils.http_errors import error_code, error_envelope, error_message
from utils.request_id import REQUEST_ID_HEADER


def _request(path="/api/media/upload/f1", request_id="client-req-0001"):
    return SimpleNamespace(url=SimpleNamespace(path=path), headers={REQUEST_ID_HEADER: request_id})


class HttpErrorsUnitTests(unittest.TestCase):
    def test_explicit_error_code_wins(self):
        detail = {"error_code": "folder_not_found", "error_message": "Folder not found"}
        self.assertEqual(error_code(404, detail), "FOLDER_NOT_FOUND")
        self.assertEqual(error_message(detail), "Folder not found")

    def test_status_fallbacks(self):
        self.assertEqual(error_code(401, "Missing Authorization header"), "AUTH_MISSING_TOKEN")
        self.assertEqual(error_code(401, "nope"), "AUTH_UNAUTHORIZED")
        self.assertEqual(error_code(413, "too big"), "FILE_TOO_LARGE")
        self.assertEqual(error_code(418, "teapot"), "HTTP_418")

    def test_envelope_echoes_path_and_client_request_id(self):
        body = error_envelope(_request(), 404, {"error_code": "MEDIA_NOT_FOUND", "error_message": "Media not found"})
        self.assertEqual(body["error_code"], "MEDIA_NOT_FOUND")
        self.assertEqual(body["path"], "/api/media/upload/f1")
        self.assertEqual(body["request_id"], "client-req-0001")

    def test_envelope_mints_request_id_for_malformed_header(self):
        body = error_envelope(_request(request_id="bad id!"), 500, "boom")
        self.assertTrue(body["request_id"].startswith("media-req-"))


if __name__ == "__main__":
    unittest.main()
