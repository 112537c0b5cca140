"""Wires configuration, session, API client and the ingestion services together."""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from ..api.client import VoucherApiClient
from ..auth.otp import AuthFlow
from ..auth.session import SessionGuard, SessionManager, SessionStore
from ..config import load_base_url, load_insecure, load_state_dir, load_timeout
from ..domain.models import Attachment
from ..logging import get_logger
from ..notify import Notifier
from ..paths import expand_abs
from ..storage import KeyValueStore
from .batch import BatchReport, BatchUploadCoordinator
from .normalize import AttachmentNormalizer
from .progress import ProgressSimulator
from .reminder import NotificationReminder, PushPermissionApi, ReminderPrompt
from .share import ShareEventDeduplicator, ShareIntentHandler, ShareIntentSource
from .sources import MediaPicker
from .store import VoucherStore
from .upload import UploadPipeline

LOG = get_logger("orchestrator-flow")


@dataclass
class FlowConfig:
    base_url: str
    timeout: int
    insecure: bool
    state_dir: str

    @property
    def converted_dir(self) -> str:
        return os.path.join(self.state_dir, "converted")


def build_flow_config(args, *, script_dir: str) -> FlowConfig:
    """Create a FlowConfig from CLI args, env and .env while logging diagnostics."""
    base_url = getattr(args, "base_url", None) or load_base_url(script_dir)
    timeout = getattr(args, "timeout", None) or load_timeout(script_dir)
    insecure = bool(getattr(args, "insecure", False)) or load_insecure(script_dir)
    user_state_dir = getattr(args, "state_dir", None)
    state_dir = expand_abs(user_state_dir) if user_state_dir else load_state_dir(script_dir)
    os.makedirs(state_dir, exist_ok=True)

    LOG.info("Flow configuration prepared")
    LOG.info(f"API base URL     : {base_url}")
    LOG.info(f"State directory  : {state_dir}")
    LOG.info(f"TLS verification : {not insecure}")
    LOG.info(f"HTTP timeout     : {timeout}s")

    return FlowConfig(
        base_url=base_url.rstrip("/"),
        timeout=int(timeout),
        insecure=insecure,
        state_dir=state_dir,
    )


class IngestFlow:
    """The client application minus its screens.

    Every input source ends in the same BatchUploadCoordinator; shared
    content additionally passes the ShareEventDeduplicator.
    """

    def __init__(
        self,
        config: FlowConfig,
        *,
        notifier: Notifier,
        http_session: Optional[requests.Session] = None,
        prompt: Optional[ReminderPrompt] = None,
        push: Optional[PushPermissionApi] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.notifier = notifier
        self.kv = KeyValueStore(config.state_dir)
        self.sessions = SessionManager(SessionStore(self.kv))
        self.guard = SessionGuard(self.sessions, notifier)
        self.api = VoucherApiClient(
            config.base_url,
            self.sessions.token,
            timeout=config.timeout,
            verify_tls=not config.insecure,
            session=http_session,
        )
        self.auth = AuthFlow(self.api, self.sessions, self.guard)
        self.store = VoucherStore(self.api, self.guard, notifier)
        self.sessions.on_end(self.store.clear)
        self.normalizer = AttachmentNormalizer(config.converted_dir)
        self.pipeline = UploadPipeline(self.api, self.guard)
        self.progress = ProgressSimulator(clock=clock)
        self.reminder: Optional[NotificationReminder] = None
        if prompt is not None and push is not None:
            self.reminder = NotificationReminder(self.kv, prompt, push, self.api, self.guard)
        self.coordinator = BatchUploadCoordinator(
            self.pipeline,
            self.store,
            self.progress,
            notifier,
            reminder=self.reminder,
            sleep=sleep,
        )
        self.share_gate = ShareEventDeduplicator()
        self.share_handler = ShareIntentHandler(self.share_gate, self.normalizer, self.coordinator, notifier)
        LOG.info("IngestFlow ready")

    def start(self) -> bool:
        """Restore a stored session and load the voucher list."""
        if self.sessions.restore():
            self.store.refresh()
            return True
        return False

    # ------------------------------------------------------------------
    # Input sources
    # ------------------------------------------------------------------
    def _require_session(self) -> bool:
        if self.sessions.is_authenticated:
            return True
        self.notifier.show_error("Not authenticated", "Please log in first")
        return False

    def _permitted(self, picker: MediaPicker, *, settings_title: str, settings_message: str, message: str) -> bool:
        result = picker.request_permission()
        if result.granted:
            return True
        if not result.can_ask_again:
            self.notifier.show_error(settings_title, settings_message)
        else:
            self.notifier.show_error("Permission required", message)
        return False

    def _submit(self, attachments: List[Attachment]) -> Optional[BatchReport]:
        if not attachments:
            return None
        return self.coordinator.submit_batch(attachments)

    def take_photo(self, camera: MediaPicker) -> Optional[BatchReport]:
        if not self._require_session():
            return None
        if not self._permitted(
            camera,
            settings_title="Camera Permission Required",
            settings_message="Camera access is needed to take photos. Please enable it in your device settings.",
            message="Camera permission is required to take photos",
        ):
            return None
        assets = camera.pick()
        if not assets:
            return None
        return self._submit(self.normalizer.from_camera(assets))

    def choose_photos(self, library: MediaPicker) -> Optional[BatchReport]:
        if not self._require_session():
            return None
        if not self._permitted(
            library,
            settings_title="Photo Library Permission Required",
            settings_message="Photo library access is needed to select photos. Please enable it in your device settings.",
            message="Media library permission is required to choose photos",
        ):
            return None
        assets = library.pick()
        if not assets:
            return None
        return self._submit(self.normalizer.from_library(assets))

    def choose_files(self, documents: MediaPicker) -> Optional[BatchReport]:
        if not self._require_session():
            return None
        try:
            assets = documents.pick()
        except Exception as exc:
            LOG.error(f"Document picker failed: {exc}")
            self.notifier.show_error("File picker error", str(exc))
            return None
        if not assets:
            return None
        return self._submit(self.normalizer.from_documents(assets))

    def handle_share(self, source: ShareIntentSource) -> bool:
        return self.share_handler.handle(source)


def log_environment_banner() -> None:
    """Print environment information relevant for debugging runs."""

    LOG.info("Starting DealSafe client")
    LOG.info(f"Working directory: {os.getcwd()}")
    LOG.info(f"Python executable: {sys.executable}")
