"""Sequential batch uploads with per-item failure isolation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from ..domain.models import Attachment, UploadFailure, UploadOutcome, UploadSuccess, Voucher
from ..errors import DealSafeError, NotAuthenticated, SessionExpired
from ..logging import get_logger
from ..notify import Notifier
from .progress import ProgressSimulator
from .reminder import NotificationReminder
from .store import VoucherStore
from .upload import UploadPipeline

LOG = get_logger("orchestrator-batch")

SETTLE_DELAY_SECONDS = 0.5
MULTI_FAILURE_TITLE = "Upload Errors"


@dataclass
class BatchReport:
    """One outcome per attempted attachment, in submission order."""

    outcomes: List[UploadOutcome] = field(default_factory=list)
    aborted: bool = False

    @property
    def successes(self) -> List[Voucher]:
        return [o.voucher for o in self.outcomes if isinstance(o, UploadSuccess)]

    @property
    def failures(self) -> List[UploadFailure]:
        return [o for o in self.outcomes if isinstance(o, UploadFailure)]


def format_failures(failures: List[UploadFailure]) -> Tuple[str, str]:
    """Return (title, body) for the error notice of a batch.

    One failure shows its message as the title and its hint as the body;
    several are listed as "name:\\nmessage[\\nhint]" separated by blank lines.
    """
    if len(failures) == 1:
        return failures[0].message, failures[0].hint
    blocks = []
    for f in failures:
        block = f"{f.name}:\n{f.message}"
        if f.hint:
            block += f"\n{f.hint}"
        blocks.append(block)
    return MULTI_FAILURE_TITLE, "\n\n".join(blocks)


class BatchUploadCoordinator:
    """Runs attachments one at a time through the UploadPipeline.

    Only the coordinator writes ``is_uploading`` and the progress estimate
    while a batch runs. A SessionExpired ends the batch early; every other
    failure is recorded against its attachment and the next one proceeds.
    """

    def __init__(
        self,
        pipeline: UploadPipeline,
        store: VoucherStore,
        progress: ProgressSimulator,
        notifier: Notifier,
        *,
        reminder: Optional[NotificationReminder] = None,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.pipeline = pipeline
        self.store = store
        self.progress = progress
        self.notifier = notifier
        self.reminder = reminder
        self.settle_delay = float(settle_delay)
        self.sleep = sleep
        self.is_uploading = False

    def _begin(self) -> None:
        self.is_uploading = True
        self.progress.start()

    def _settle(self) -> None:
        self.sleep(self.settle_delay)
        self.progress.reset()
        self.is_uploading = False

    def _after_success(self) -> None:
        self.store.refresh()
        # a reminder shown after the session ended could never register a token
        if self.reminder is not None and self.store.guard.sessions.is_authenticated:
            self.reminder.prompt_if_needed()

    def submit_batch(self, attachments: Iterable[Attachment]) -> BatchReport:
        items = list(attachments)
        report = BatchReport()
        if not items:
            return report

        LOG.info(f"Submitting batch of {len(items)} attachment(s)")
        self._begin()
        try:
            for index, att in enumerate(items, start=1):
                LOG.info(f"[{index}/{len(items)}] {att.name}")
                try:
                    voucher = self.pipeline.upload_file(att.uri, att.name, att.type)
                except (SessionExpired, NotAuthenticated):
                    LOG.warning(f"Session lost; skipping {len(items) - index} remaining item(s)")
                    report.aborted = True
                    break
                except DealSafeError as exc:
                    LOG.warning(f"Upload failed for {att.name}: {exc.message}")
                    report.outcomes.append(UploadFailure(att.name, exc.message or "Upload failed", exc.hint))
                except Exception as exc:
                    LOG.exception(f"Unexpected error uploading {att.name}: {exc}")
                    report.outcomes.append(UploadFailure(att.name, str(exc) or "Upload failed", ""))
                else:
                    report.outcomes.append(UploadSuccess(voucher))

            self.progress.complete()
            if report.successes:
                self._after_success()
            if report.failures:
                title, body = format_failures(report.failures)
                self.notifier.show_error(title, body)
            LOG.info(
                f"Batch finished: {len(report.successes)} succeeded, "
                f"{len(report.failures)} failed, aborted={report.aborted}"
            )
        finally:
            self._settle()
        return report

    def submit_url(self, url: str) -> Optional[Voucher]:
        self._begin()
        try:
            try:
                voucher = self.pipeline.upload_url(url)
            except (SessionExpired, NotAuthenticated):
                self.progress.reset()
                return None
            except DealSafeError as exc:
                LOG.error(f"Failed to download and upload URL: {exc.message}")
                self.progress.reset()
                self.notifier.show_error(exc.message or "Upload failed", exc.hint)
                return None
            self.progress.complete()
            self._after_success()
            return voucher
        finally:
            self._settle()
