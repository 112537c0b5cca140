"""User-facing notices (the modal/alert surface of the client)."""

from __future__ import annotations

import sys
from typing import List, Protocol, TextIO, Tuple

from .logging import get_logger

LOG = get_logger("notify")


class Notifier(Protocol):
    def show_error(self, title: str, message: str) -> None: ...

    def show_notice(self, title: str, message: str) -> None: ...


class ConsoleNotifier:
    """Prints notices to a stream; used by the CLI."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stderr

    def _emit(self, prefix: str, title: str, message: str) -> None:
        body = f"{prefix} {title}"
        if message:
            body += f"\n{message}"
        print(body, file=self.stream, flush=True)

    def show_error(self, title: str, message: str) -> None:
        LOG.debug(f"Error notice: {title}")
        self._emit("[error]", title, message)

    def show_notice(self, title: str, message: str) -> None:
        LOG.debug(f"Notice: {title}")
        self._emit("[info]", title, message)


class RecordingNotifier:
    """Keeps every notice in memory; handy for embedding and for tests."""

    def __init__(self) -> None:
        self.errors: List[Tuple[str, str]] = []
        self.notices: List[Tuple[str, str]] = []

    def show_error(self, title: str, message: str) -> None:
        self.errors.append((title, message))

    def show_notice(self, title: str, message: str) -> None:
        self.notices.append((title, message))
