"""One-time reminder to enable push notifications after a successful upload.

Everything here is best effort: failures are logged and never reach the
upload flow.
"""

from __future__ import annotations

import platform
from typing import Optional, Protocol

from ..api.client import VoucherApiClient
from ..auth.session import SessionGuard
from ..errors import DealSafeError
from ..logging import get_logger
from ..storage import KeyValueStore

LOG = get_logger("orchestrator-reminder")

PERMISSION_ASKED_KEY = "dealsafe_notification_permission_asked"
GRANTED = "granted"


class ReminderPrompt(Protocol):
    def ask(self) -> bool:
        """Return True when the user wants notifications."""
        ...


class PushPermissionApi(Protocol):
    def get_status(self) -> str: ...

    def request_permission(self) -> str: ...

    def get_push_token(self) -> str: ...


def default_device_name() -> str:
    return f"{platform.system() or 'Unknown'} {platform.release()}".strip() or "Unknown Device"


class NotificationReminder:
    def __init__(
        self,
        kv: KeyValueStore,
        prompt: ReminderPrompt,
        push: PushPermissionApi,
        api: VoucherApiClient,
        guard: SessionGuard,
        *,
        platform_name: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> None:
        self.kv = kv
        self.prompt = prompt
        self.push = push
        self.api = api
        self.guard = guard
        self.platform_name = platform_name or (platform.system().lower() or "unknown")
        self.device_name = device_name or default_device_name()

    def has_been_asked(self) -> bool:
        try:
            return self.kv.get(PERMISSION_ASKED_KEY) == "true"
        except Exception as exc:
            LOG.error(f"Error checking notification permission asked: {exc}")
            return False

    def mark_asked(self) -> None:
        try:
            self.kv.set(PERMISSION_ASKED_KEY, "true")
        except Exception as exc:
            LOG.error(f"Error marking notification permission asked: {exc}")

    def prompt_if_needed(self) -> None:
        if self.has_been_asked():
            return
        try:
            wants = bool(self.prompt.ask())
        except Exception as exc:
            LOG.error(f"Notification reminder prompt failed: {exc}")
            return
        self.mark_asked()
        if wants:
            self.request_permission()

    def request_permission(self) -> None:
        try:
            status = self.push.get_status()
            if status != GRANTED:
                status = self.push.request_permission()
            if status != GRANTED:
                LOG.info(f"Notification permission not granted (status={status})")
                return
            token = self.push.get_push_token()
        except Exception as exc:
            LOG.error(f"Error requesting notification permission: {exc}")
            return
        self.register_token(token)

    def register_token(self, token: str) -> None:
        if not self.guard.sessions.is_authenticated:
            return
        try:
            self.guard.call(self.api.register_notification_token, token, self.platform_name, self.device_name)
        except DealSafeError as exc:
            LOG.error(f"Failed to register notification token: {exc}")
            return
        LOG.info("Notification token registered successfully")
