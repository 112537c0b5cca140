"""Exactly-once handling of content shared from other applications."""

from __future__ import annotations

from typing import Optional, Protocol

from ..domain.models import ShareEvent
from ..errors import ValidationFailure
from ..logging import get_logger
from ..notify import Notifier
from .batch import BatchUploadCoordinator
from .normalize import AttachmentNormalizer

LOG = get_logger("orchestrator-share")


class ShareIntentSource(Protocol):
    """OS share-intent delivery; may redeliver the same event."""

    @property
    def has_event(self) -> bool: ...

    @property
    def payload(self) -> Optional[ShareEvent]: ...

    @property
    def error(self) -> Optional[str]: ...

    def acknowledge(self) -> None: ...


class ShareEventDeduplicator:
    """Single-slot latch: one event in flight, and never the last key twice."""

    def __init__(self) -> None:
        self.is_processing = False
        self.last_processed_key: Optional[str] = None

    def try_acquire(self, key: str) -> bool:
        if self.is_processing:
            LOG.debug("Share event dropped; another one is in flight")
            return False
        if key == self.last_processed_key:
            LOG.info("Share event already processed, skipping")
            return False
        self.is_processing = True
        self.last_processed_key = key
        return True

    def release(self) -> None:
        self.is_processing = False


def shared_url(event: ShareEvent) -> Optional[str]:
    return event.web_url or event.text or None


def validate_shared_url(url: Optional[str]) -> str:
    if url and url.startswith(("http://", "https://")):
        return url
    raise ValidationFailure("Invalid URL", "The shared content is not a valid URL.")


class ShareIntentHandler:
    def __init__(
        self,
        gate: ShareEventDeduplicator,
        normalizer: AttachmentNormalizer,
        coordinator: BatchUploadCoordinator,
        notifier: Notifier,
    ) -> None:
        self.gate = gate
        self.normalizer = normalizer
        self.coordinator = coordinator
        self.notifier = notifier

    def handle(self, source: ShareIntentSource) -> bool:
        """Process the pending event of ``source``; True when work was started."""
        event = source.payload
        if not source.has_event or event is None or self.gate.is_processing:
            # errors surface only when nothing deliverable is pending
            if source.error:
                LOG.error(f"Share intent error: {source.error}")
                self.notifier.show_error("Share Error", f"Failed to receive shared content: {source.error}")
            return False
        if not self.gate.try_acquire(event.key()):
            return False

        # Acknowledge before any I/O so a redelivery cannot slip in.
        source.acknowledge()
        try:
            self._process(event)
        finally:
            self.gate.release()
        return True

    def _process(self, event: ShareEvent) -> None:
        if event.text or event.web_url:
            url = shared_url(event)
            LOG.info(f"Received shared URL: {url}")
            try:
                valid = validate_shared_url(url)
            except ValidationFailure as exc:
                self.notifier.show_error(exc.title, exc.hint)
                return
            self.coordinator.submit_url(valid)
        elif event.files:
            LOG.info(f"Received {len(event.files)} shared file(s)")
            attachments = self.normalizer.from_share_files(event.files)
            self.coordinator.submit_batch(attachments)
        else:
            LOG.debug("Share event carried neither URL nor files")
