from __future__ import annotations

import json
import re
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_ROOT))

from dealsafe_client.domain.models import User  # noqa: E402
from dealsafe_client.notify import RecordingNotifier  # noqa: E402
from dealsafe_client.orchestrator.flow import FlowConfig, IngestFlow  # noqa: E402

API_URL = "https://api.test"
VALID_TOKEN = "tok-valid-123"

_FILE_PART_RE = re.compile(rb'name="([^"]+)"; filename="([^"]*)"\r\nContent-Type: ([^\r]+)\r\n\r\n')


class FakeBackend:
    """In-process stand-in for the DealSafe API and a remote content host."""

    def __init__(self) -> None:
        self.valid_token: Optional[str] = VALID_TOKEN
        self.otp_code = "123456"
        self.user = {"id": 7, "phone_number": "+4512345678", "created_at": "2025-01-01T00:00:00Z"}
        self.vouchers: List[Dict[str, Any]] = []
        self.next_id = 1
        self.calls: List[Tuple[str, str]] = []
        self.uploads: List[Dict[str, Any]] = []
        self.analyzed: List[Dict[str, Any]] = []
        self.registered_tokens: List[Dict[str, Any]] = []
        # filename -> (status, body) returned by /analyze instead of success
        self.analyze_responses: Dict[str, Tuple[int, Any]] = {}
        # filename -> (status, body) returned by /upload-file instead of success
        self.upload_responses: Dict[str, Tuple[int, Any]] = {}
        self.url_responses: Dict[str, Tuple[int, Any]] = {}
        self.list_response: Optional[Tuple[int, Any]] = None
        self.mark_used_response: Optional[Tuple[int, Any]] = None
        self.delete_response: Optional[Tuple[int, Any]] = None
        self.remote_content: Dict[str, bytes] = {}
        self.deleted_account = False
        # called before every request is answered
        self.on_request: Optional[Callable[[str, str], None]] = None

    # ---------- helpers ----------
    def add_voucher(self, **fields: Any) -> Dict[str, Any]:
        vid = self.next_id
        self.next_id += 1
        record = {
            "id": vid,
            "file_url": f"https://blob.test/{vid}",
            "file_type": "image/jpeg",
            "original_filename": f"voucher-{vid}.jpg",
            "file_size": 100,
            "number_of_persons": 2,
            "redemption_method": "code",
            "redemption_value": "ABC123",
            "description": f"Voucher {vid}",
            "expires_at": "2026-12-31",
            "is_valid": True,
            "rejection_reason": None,
            "confidence_score": 0.9,
            "usage_guide": {"raw": "Show code", "steps": ["Open app", "Show code"]},
            "created_at": "2025-01-01T00:00:00Z",
            "updated_at": "2025-01-01T00:00:00Z",
        }
        record.update(fields)
        self.vouchers.insert(0, record)
        return record

    def paths(self) -> List[str]:
        return [p for _, p in self.calls]

    def _authorized(self, request: requests.PreparedRequest) -> bool:
        header = request.headers.get("Authorization") or ""
        return self.valid_token is not None and header == f"Bearer {self.valid_token}"

    @staticmethod
    def _json_body(request: requests.PreparedRequest) -> Dict[str, Any]:
        if not request.body:
            return {}
        body = request.body if isinstance(request.body, (bytes, str)) else b""
        return json.loads(body)

    # ---------- dispatch ----------
    def handle(self, request: requests.PreparedRequest) -> Tuple[int, Any]:
        parsed = urlparse(request.url)
        method = request.method or "GET"
        path = parsed.path
        self.calls.append((method, path))
        if self.on_request is not None:
            self.on_request(method, path)

        if parsed.netloc != urlparse(API_URL).netloc:
            content = self.remote_content.get(request.url)
            if content is None:
                return 404, "not found"
            return 200, content

        if path == "/api/auth/request-otp":
            return 200, {"success": True, "message": "sent", "code": self.otp_code}
        if path == "/api/auth/verify-otp":
            body = self._json_body(request)
            if body.get("code") == self.otp_code:
                return 200, {"success": True, "token": VALID_TOKEN, "user": self.user}
            return 400, {"success": False, "message": "Invalid or expired OTP code"}

        if not self._authorized(request):
            return 401, {"success": False, "message": "Unauthorized"}

        if path == "/api/auth/delete-account":
            body = self._json_body(request)
            if "code" not in body:
                return 200, {"success": True, "code": self.otp_code}
            if body["code"] == self.otp_code:
                self.deleted_account = True
                return 200, {"success": True}
            return 400, {"success": False, "message": "Invalid or expired OTP code"}

        if path == "/api/vouchers" and method == "GET":
            if self.list_response is not None:
                return self.list_response
            limit = int(parse_qs(parsed.query).get("limit", ["100"])[0])
            return 200, {"success": True, "vouchers": self.vouchers[:limit]}

        if path == "/api/vouchers/upload-file":
            body = request.body if isinstance(request.body, bytes) else b""
            parts = _FILE_PART_RE.findall(body)
            assert len(parts) == 1, "expected exactly one multipart file part"
            field_name, filename, content_type = (p.decode() for p in parts[0])
            assert field_name == "file"
            self.uploads.append({"filename": filename, "mimeType": content_type, "body": body})
            if filename in self.upload_responses:
                return self.upload_responses[filename]
            return 200, {
                "file": {
                    "url": f"https://blob.test/uploads/{filename}",
                    "filename": filename,
                    "mimeType": content_type,
                    "size": len(body),
                }
            }

        if path == "/api/vouchers/analyze":
            body = self._json_body(request)
            self.analyzed.append(body)
            filename = body.get("filename")
            if filename in self.analyze_responses:
                return self.analyze_responses[filename]
            record = self.add_voucher(
                original_filename=filename,
                file_url=body.get("fileUrl"),
                file_type=body.get("mimeType"),
                description=f"Analysed {filename}",
            )
            return 200, {"success": True, "voucher": record}

        if path == "/api/vouchers/upload":
            url = self._json_body(request).get("url")
            if url in self.url_responses:
                return self.url_responses[url]
            record = self.add_voucher(original_filename=url, description=f"From {url}")
            return 200, {"success": True, "voucher": record}

        m = re.fullmatch(r"/api/vouchers/(\d+)/mark-used", path)
        if m:
            if self.mark_used_response is not None:
                return self.mark_used_response
            vid = int(m.group(1))
            self.vouchers = [v for v in self.vouchers if v["id"] != vid]
            return 200, {"success": True}

        m = re.fullmatch(r"/api/vouchers/(\d+)", path)
        if m and method == "DELETE":
            if self.delete_response is not None:
                return self.delete_response
            vid = int(m.group(1))
            self.vouchers = [v for v in self.vouchers if v["id"] != vid]
            return 200, {"success": True}

        if path == "/api/notifications/register-token":
            self.registered_tokens.append(self._json_body(request))
            return 200, {"success": True}

        return 404, {"message": "Not found"}


class FakeBackendAdapter(BaseAdapter):
    def __init__(self, backend: FakeBackend) -> None:
        super().__init__()
        self.backend = backend

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        status, body = self.backend.handle(request)
        resp = requests.Response()
        resp.status_code = status
        resp.reason = "OK" if status < 400 else "Error"
        resp.url = request.url
        resp.request = request
        resp.encoding = "utf-8"
        if isinstance(body, bytes):
            resp._content = body
            resp.headers = CaseInsensitiveDict({"Content-Type": "application/octet-stream"})
        elif isinstance(body, str):
            resp._content = body.encode("utf-8")
            resp.headers = CaseInsensitiveDict({"Content-Type": "text/plain"})
        else:
            resp._content = json.dumps(body).encode("utf-8")
            resp.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        return resp

    def close(self) -> None:
        pass


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_session(backend: FakeBackend) -> requests.Session:
    s = requests.Session()
    s.mount("https://", FakeBackendAdapter(backend))
    return s


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def flow(tmp_path: Path, http_session, notifier, clock, sleeps) -> IngestFlow:
    config = FlowConfig(base_url=API_URL, timeout=5, insecure=False, state_dir=str(tmp_path / "state"))
    return IngestFlow(config, notifier=notifier, http_session=http_session, clock=clock, sleep=sleeps.append)


@pytest.fixture
def logged_in_flow(flow: IngestFlow, backend: FakeBackend) -> IngestFlow:
    flow.sessions.login(VALID_TOKEN, User.from_json(backend.user))
    return flow
