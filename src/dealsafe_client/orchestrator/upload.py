"""Two-step upload (raw file, then AI analysis) and upload-by-URL."""

from __future__ import annotations

import os

from ..api.client import VoucherApiClient
from ..auth.session import SessionGuard
from ..domain.models import Voucher
from ..errors import TransportFailure
from ..logging import get_logger
from ..paths import is_remote_uri, uri_to_path
from .normalize import resolve_mime_type

LOG = get_logger("orchestrator-upload")


class UploadPipeline:
    """Per-attachment remote protocol; both calls run through the SessionGuard.

    Steps are strictly sequential and never retried: analysis needs the blob
    descriptor returned by the upload step.
    """

    def __init__(self, api: VoucherApiClient, guard: SessionGuard) -> None:
        self.api = api
        self.guard = guard

    def _content_type(self, name: str, mime_type: str | None) -> str:
        content_type = mime_type or "image/jpeg"
        if content_type == "image" or "/" not in content_type:
            content_type = resolve_mime_type(None, name)
        return content_type

    def _send(self, uri: str, name: str, content_type: str) -> dict:
        if is_remote_uri(uri):
            # Remote content is materialized first; the wire format is the same.
            data = self.api.fetch_bytes(uri)
            LOG.debug(f"Fetched {len(data)} byte(s) from {uri}")
            return self.guard.call(self.api.upload_file, name, data, content_type)
        path = uri_to_path(uri)
        try:
            fh = open(path, "rb")
        except OSError as exc:
            LOG.error(f"Cannot open {path!r} for upload: {exc}")
            raise TransportFailure(f"Failed to read file: {os.path.basename(path) or name}") from exc
        with fh:
            return self.guard.call(self.api.upload_file, name, fh, content_type)

    def upload_file(self, uri: str, name: str, mime_type: str | None = None) -> Voucher:
        self.guard.ensure_authenticated()
        content_type = self._content_type(name, mime_type)
        LOG.info(f"Starting upload: name={name!r}, type={content_type}")
        LOG.debug(f"Upload source URI: {uri}")

        LOG.info("Step 1: Uploading file to blob storage")
        file_info = self._send(uri, name, content_type)
        LOG.debug(f"File uploaded: {file_info}")

        LOG.info("Step 2: Analyzing file with AI")
        voucher = self.guard.call(self.api.analyze_file, file_info)
        LOG.info(f"Analysis complete: voucher id={voucher.id} valid={voucher.is_valid}")
        return voucher

    def upload_url(self, url: str) -> Voucher:
        self.guard.ensure_authenticated()
        LOG.info(f"Submitting URL for download and analysis: {url}")
        voucher = self.guard.call(self.api.upload_url, url)
        LOG.info(f"Upload and analysis complete: voucher id={voucher.id}")
        return voucher
