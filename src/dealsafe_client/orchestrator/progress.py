"""Elapsed-time progress estimate for uploads.

The backend exposes no transfer progress, so the value is purely visual: it
eases out towards a ceiling while a batch runs and snaps to 100 once the
batch completes.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

CEILING = 95.0
RAMP_SECONDS = 15.0
FINISH_SECONDS = 0.3


def ease_out_quad(x: float) -> float:
    return 1.0 - (1.0 - x) * (1.0 - x)


def ease_in_out_quad(x: float) -> float:
    if x < 0.5:
        return 2.0 * x * x
    return 1.0 - ((-2.0 * x + 2.0) ** 2) / 2.0


def _clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else x


class ProgressSimulator:
    IDLE = "idle"
    RAMPING = "ramping"
    FINISHING = "finishing"

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        ceiling: float = CEILING,
        ramp_seconds: float = RAMP_SECONDS,
        finish_seconds: float = FINISH_SECONDS,
    ) -> None:
        self.clock = clock
        self.ceiling = float(ceiling)
        self.ramp_seconds = float(ramp_seconds)
        self.finish_seconds = float(finish_seconds)
        self.phase = self.IDLE
        self._started_at: Optional[float] = None
        self._finish_from = 0.0
        self._finish_at: Optional[float] = None

    def start(self) -> None:
        """Reset to 0 and begin the ramp towards the ceiling."""
        self.phase = self.RAMPING
        self._started_at = self.clock()
        self._finish_at = None
        self._finish_from = 0.0

    def complete(self) -> None:
        """Animate from the current value to 100."""
        self._finish_from = self.value()
        self._finish_at = self.clock()
        self.phase = self.FINISHING

    def reset(self) -> None:
        self.phase = self.IDLE
        self._started_at = None
        self._finish_at = None
        self._finish_from = 0.0

    def value(self) -> float:
        if self.phase == self.RAMPING and self._started_at is not None:
            t = _clamp01((self.clock() - self._started_at) / self.ramp_seconds)
            return self.ceiling * ease_out_quad(t)
        if self.phase == self.FINISHING and self._finish_at is not None:
            if self.finish_seconds <= 0:
                return 100.0
            t = _clamp01((self.clock() - self._finish_at) / self.finish_seconds)
            return self._finish_from + (100.0 - self._finish_from) * ease_in_out_quad(t)
        return 0.0
