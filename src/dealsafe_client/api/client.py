from __future__ import annotations

from typing import Any, BinaryIO, Callable, Dict, List, Optional, Union

import requests

from ..domain.models import Voucher
from ..errors import NotAuthenticated, RemoteRejection, SessionExpired, TransportFailure
from ..logging import get_logger, redact_token

FileContent = Union[bytes, BinaryIO]


class VoucherApiClient:
    """Thin client for the DealSafe backend with session, timeouts, and logging.

    Authenticated calls read the bearer token from ``token_provider`` on every
    request so a login, logout or expiry takes effect immediately. A ``401``
    on an authenticated call raises :class:`SessionExpired`; every other
    non-2xx becomes a :class:`RemoteRejection` (structured body) or a
    :class:`TransportFailure` (anything else).
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        *,
        timeout: int = 60,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.verify = bool(verify_tls)
        self.token_provider = token_provider
        self.log = get_logger("api-client")
        self.s = session or requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        return f"{self.base}{path}"

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider()
        if not token:
            raise NotAuthenticated()
        return {"Authorization": f"Bearer {token}"}

    def _request(self, method: str, path: str, *, auth: bool = True, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if auth:
            headers.update(self._auth_headers())
        url = self._url(path)
        self.log.debug(f"{method} {url} auth={redact_token(headers.get('Authorization'))}")
        try:
            return self.s.request(
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify,
                **kwargs,
            )
        except requests.RequestException as e:
            self.log.error(f"{method} {path} failed: {e}")
            raise TransportFailure(str(e)) from e

    def _check(self, r: requests.Response, *, default_message: str, auth: bool = True) -> None:
        if r.ok:
            return
        if auth and r.status_code == 401:
            self.log.warning(f"{r.url} returned 401")
            raise SessionExpired()
        try:
            body = r.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or default_message
            hint = body.get("hint") or ""
            self.log.error(f"Request rejected ({r.status_code}): {message}")
            raise RemoteRejection(str(message), str(hint), status_code=r.status_code)
        text = (r.text or "").strip()
        self.log.error(f"Request failed with status {r.status_code}: {text[:500]}")
        raise TransportFailure(text or default_message)

    def _json(self, r: requests.Response) -> Dict[str, Any]:
        try:
            body = r.json()
        except ValueError as e:
            raise TransportFailure("Invalid response from server") from e
        if not isinstance(body, dict):
            raise TransportFailure("Invalid response from server")
        return body

    def _voucher(self, body: Dict[str, Any]) -> Voucher:
        voucher = body.get("voucher")
        if body.get("success") and isinstance(voucher, dict):
            try:
                return Voucher.from_json(voucher)
            except (KeyError, TypeError, ValueError) as e:
                raise TransportFailure("Invalid response from server") from e
        raise TransportFailure("Invalid response from server")

    # ---------- auth ----------
    def request_otp(self, phone_number: str) -> Dict[str, Any]:
        r = self._request("POST", "/api/auth/request-otp", auth=False, json={"phone_number": phone_number})
        self._check(r, default_message="Failed to send OTP code", auth=False)
        return self._json(r)

    def verify_otp(self, phone_number: str, code: str) -> Dict[str, Any]:
        r = self._request(
            "POST",
            "/api/auth/verify-otp",
            auth=False,
            json={"phone_number": phone_number, "code": code},
        )
        self._check(r, default_message="Invalid or expired OTP code", auth=False)
        return self._json(r)

    def request_account_deletion(self) -> Dict[str, Any]:
        r = self._request("POST", "/api/auth/delete-account")
        self._check(r, default_message="Failed to send verification code")
        return self._json(r)

    def confirm_account_deletion(self, code: str) -> Dict[str, Any]:
        r = self._request("POST", "/api/auth/delete-account", json={"code": code})
        self._check(r, default_message="Invalid or expired OTP code")
        return self._json(r)

    # ---------- vouchers ----------
    def list_vouchers(self, limit: int = 100) -> Optional[List[Voucher]]:
        """Return the authoritative voucher list, or None if the body was not usable."""
        r = self._request("GET", "/api/vouchers", params={"limit": int(limit)})
        self._check(r, default_message="Failed to fetch vouchers")
        body = self._json(r)
        items = body.get("vouchers")
        if not (body.get("success") and isinstance(items, list)):
            self.log.warning("Voucher list response missing 'success'/'vouchers'; ignoring")
            return None
        vouchers: List[Voucher] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                vouchers.append(Voucher.from_json(item))
            except (KeyError, TypeError, ValueError) as e:
                self.log.warning(f"Skipping malformed voucher entry: {e}")
        return vouchers

    def upload_file(self, file_name: str, content: FileContent, content_type: str) -> Dict[str, Any]:
        """POST the raw file as the single multipart field ``file``; return the blob descriptor."""
        self.log.info(f"POST upload-file: name={file_name!r}, type={content_type}")
        files = {"file": (file_name, content, content_type)}
        r = self._request("POST", "/api/vouchers/upload-file", files=files)
        self._check(r, default_message="Upload failed")
        body = self._json(r)
        info = body.get("file")
        if not isinstance(info, dict) or not info.get("url"):
            raise TransportFailure("Invalid response from server")
        return info

    def analyze_file(self, file_info: Dict[str, Any]) -> Voucher:
        payload = {
            "fileUrl": file_info.get("url"),
            "filename": file_info.get("filename"),
            "mimeType": file_info.get("mimeType"),
            "size": file_info.get("size"),
        }
        self.log.info(f"POST analyze: filename={payload['filename']!r}")
        r = self._request("POST", "/api/vouchers/analyze", json=payload)
        self._check(r, default_message="Analysis failed")
        return self._voucher(self._json(r))

    def upload_url(self, url: str) -> Voucher:
        self.log.info(f"POST upload (by URL): {url}")
        r = self._request("POST", "/api/vouchers/upload", json={"url": url})
        self._check(r, default_message="Upload failed")
        return self._voucher(self._json(r))

    def mark_used(self, voucher_id: int) -> None:
        r = self._request("POST", f"/api/vouchers/{int(voucher_id)}/mark-used")
        self._check(r, default_message="Failed to mark voucher as used")

    def delete_voucher(self, voucher_id: int) -> None:
        r = self._request("DELETE", f"/api/vouchers/{int(voucher_id)}")
        self._check(r, default_message="Failed to delete voucher")

    # ---------- notifications ----------
    def register_notification_token(self, token: str, platform: str, device_name: str) -> None:
        r = self._request(
            "POST",
            "/api/notifications/register-token",
            json={"token": token, "platform": platform, "device_name": device_name},
        )
        self._check(r, default_message="Failed to register notification token")

    # ---------- remote content ----------
    def fetch_bytes(self, uri: str) -> bytes:
        """Download content behind a remote URI (no bearer header is sent)."""
        try:
            r = self.s.get(uri, timeout=self.timeout, verify=self.verify)
            r.raise_for_status()
        except requests.RequestException as e:
            self.log.error(f"Failed to fetch content from {uri}: {e}")
            raise TransportFailure("Failed to process file for upload") from e
        return r.content
