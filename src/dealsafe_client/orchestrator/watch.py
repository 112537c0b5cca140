"""Drop-folder share source: new files in a directory arrive as share events."""

from __future__ import annotations

import os
import time
from typing import Callable, Iterable, List, Optional, Set

from ..domain.models import ShareEvent, SharedFile
from ..logging import get_logger
from ..paths import expand_abs

LOG = get_logger("orchestrator-watch")

WATCH_EXTS: Set[str] = {".jpg", ".jpeg", ".png", ".heic", ".webp", ".pdf"}


def _normalize_exts(exts: Iterable[str]) -> Set[str]:
    out: Set[str] = set()
    for e in exts:
        if not e:
            continue
        ee = e.lower()
        if not ee.startswith('.'):
            ee = '.' + ee
        out.add(ee)
    return out


def list_basenames_in_dir_by_ext(directory: str, exts: Iterable[str]) -> Set[str]:
    """Return file names in ``directory`` with a watched extension.

    Raises OSError when the directory cannot be listed.
    """
    watch_exts = _normalize_exts(exts)
    files: Set[str] = set()
    for name in os.listdir(directory):
        full = os.path.join(directory, name)
        if os.path.isfile(full):
            _, ext = os.path.splitext(name)
            if ext.lower() in watch_exts:
                files.add(name)
    return files


class DropFolderShareSource:
    """Polls a folder and exposes newly created files as one pending share event.

    The pending event stays in place (and is redelivered on every poll) until
    it is acknowledged, matching an OS share-intent source.
    """

    def __init__(
        self,
        watch_dir: str,
        *,
        poll_interval_sec: float = 1.0,
        exts: Optional[Iterable[str]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.watch_dir = expand_abs(watch_dir)
        if not os.path.isdir(self.watch_dir):
            raise NotADirectoryError(f"Watch directory does not exist or is not a directory: {self.watch_dir!r}")
        self.exts: Set[str] = _normalize_exts(exts or WATCH_EXTS)
        self.poll_interval_sec = float(poll_interval_sec)
        self.clock = clock
        self.baseline: Set[str] = list_basenames_in_dir_by_ext(self.watch_dir, self.exts)
        self._pending: Optional[ShareEvent] = None
        self._error: Optional[str] = None
        LOG.info(f"Watching {self.watch_dir!r} for {sorted(self.exts)}; {len(self.baseline)} existing file(s) ignored")

    @property
    def has_event(self) -> bool:
        return self._pending is not None

    @property
    def payload(self) -> Optional[ShareEvent]:
        return self._pending

    @property
    def error(self) -> Optional[str]:
        return self._error

    def acknowledge(self) -> None:
        self._pending = None
        self._error = None

    def scan_once(self) -> List[str]:
        """Look for new files; queue them as a share event when none is pending."""
        try:
            current = list_basenames_in_dir_by_ext(self.watch_dir, self.exts)
        except OSError as e:
            self._error = f"Failed to list directory '{self.watch_dir}': {e}"
            LOG.error(self._error)
            return []
        self._error = None
        if self._pending is not None:
            return []

        new_files = sorted(current - self.baseline)
        if not new_files:
            return []
        paths = [os.path.join(self.watch_dir, name) for name in new_files]
        LOG.info(f"Detected {len(paths)} new file(s): {new_files}")
        self._pending = ShareEvent(
            files=[SharedFile(path=p, file_name=os.path.basename(p)) for p in paths],
            captured_at=self.clock(),
        )
        self.baseline |= set(new_files)
        return paths

    def run(self, on_poll: Callable[["DropFolderShareSource"], object]) -> None:
        try:
            while True:
                self.scan_once()
                on_poll(self)
                time.sleep(self.poll_interval_sec)
        except KeyboardInterrupt:
            LOG.info("Interrupted by user; exiting watch mode")
