import http.client
import io
import json
import sys
import unittest
import urllib.error
from pathlib import Path
from unittest import mock

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from services.backend_client import (
    BackendConnectionError,
    BackendHTTPError,
    BmuApiClient,
    MalformedResponseError,
)
from services.notifications import INSUFFICIENT_PERMISSION, INVALID_CREDENTIALS, describe_failure


def _response(body: bytes):
    response = mock.MagicMock()
    response.__enter__.return_value.read.return_value = body
    return response


def _http_error(code: int, body: bytes = b""):
    return urllib.error.HTTPError("http://backend.invalid/api", code, "error", {}, io.BytesIO(body))


class BackendClientTests(unittest.TestCase):
    def setUp(self):
        self.client = BmuApiClient("http://backend.invalid/api/", token="tok-123", timeout=5)

    def test_bearer_header_and_typed_result(self):
        payload = [{"id": 1, "category": "Sofa", "asset_code": "SOF-001", "status": "usable"}]
        with mock.patch("urllib.request.urlopen", return_value=_response(json.dumps(payload).encode())) as urlopen:
            items = self.client.list_equipment()

        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "http://backend.invalid/api/equipment")
        self.assertEqual(request.get_header("Authorization"), "Bearer tok-123")
        self.assertEqual(urlopen.call_args.kwargs["timeout"], 5)
        self.assertEqual(items[0].ID, 1)
        self.assertEqual(items[0].asset_code, "SOF-001")

    def test_json_body_is_sent_for_mutations(self):
        with mock.patch("urllib.request.urlopen", return_value=_response(b"")) as urlopen:
            result = self.client.reject_request(9, "busy")

        request = urlopen.call_args.args[0]
        self.assertIsNone(result)
        self.assertEqual(request.get_method(), "PUT")
        self.assertEqual(request.full_url, "http://backend.invalid/api/equipment/history/9/reject")
        self.assertEqual(json.loads(request.data.decode()), {"remark": "busy"})

    def test_wrong_shape_raises_malformed(self):
        with mock.patch("urllib.request.urlopen", return_value=_response(b'{"items": []}')):
            with self.assertRaises(MalformedResponseError):
                self.client.list_pending_history()

    def test_invalid_json_raises_malformed(self):
        with mock.patch("urllib.request.urlopen", return_value=_response(b"<html>oops</html>")):
            with self.assertRaises(MalformedResponseError):
                self.client.list_users()

    def test_http_error_carries_status_and_message(self):
        error = _http_error(500, b'{"message": "db down"}')
        with mock.patch("urllib.request.urlopen", side_effect=error):
            with self.assertRaises(BackendHTTPError) as ctx:
                self.client.list_repair_reports()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.detail, "db down")

    def test_unreachable_backend(self):
        with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("refused")):
            with self.assertRaises(BackendConnectionError):
                self.client.get_dashboard_summary()

    def test_transport_failures_become_connection_errors(self):
        read_timeout = mock.MagicMock()
        read_timeout.__enter__.return_value.read.side_effect = TimeoutError("timed out")
        read_timeout.__exit__.return_value = False
        failures = [
            {"return_value": read_timeout},
            {"side_effect": ConnectionResetError(104, "Connection reset by peer")},
            {"side_effect": http.client.RemoteDisconnected("Remote end closed connection")},
        ]
        for patch_kwargs in failures:
            with self.subTest(patch_kwargs=patch_kwargs):
                with mock.patch("urllib.request.urlopen", **patch_kwargs):
                    with self.assertRaises(BackendConnectionError):
                        self.client.list_equipment()


class FailureMessageTests(unittest.TestCase):
    def test_login_unauthorized_is_invalid_credentials(self):
        exc = BackendHTTPError("x", status_code=401)
        self.assertEqual(describe_failure("login", exc), (401, INVALID_CREDENTIALS))

    def test_forbidden_uses_permission_message(self):
        exc = BackendHTTPError("x", status_code=403)
        self.assertEqual(describe_failure("vault.list", exc), (403, INSUFFICIENT_PERMISSION))
        self.assertEqual(describe_failure("users.create", exc)[1], "คุณไม่มีสิทธิ์ในการเพิ่มผู้ใช้งาน")

    def test_client_errors_pass_through_with_detail(self):
        exc = BackendHTTPError("x", status_code=409, detail="duplicate asset code")
        self.assertEqual(describe_failure("equipment.create", exc), (409, "เพิ่มอุปกรณ์ไม่สำเร็จ: duplicate asset code"))

    def test_server_and_connection_errors_become_bad_gateway(self):
        self.assertEqual(describe_failure("borrow.submit", BackendHTTPError("x", status_code=503))[0], 502)
        status_code, message = describe_failure("dashboard", BackendConnectionError("refused"))
        self.assertEqual(status_code, 502)
        self.assertEqual(message, "ไม่สามารถดึงข้อมูลสรุปได้")


if __name__ == "__main__":
    unittest.main()
