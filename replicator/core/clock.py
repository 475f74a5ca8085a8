from __future__ import annotations

import time
from dataclasses import dataclass


def monotonic_ms() -> int:
    """Monotonic clock in milliseconds.

    Use this for pass duration measurements.
    """

    return int(time.monotonic() * 1000)


@dataclass(slots=True)
class PassTiming:
    """Start/end markers for one scaling pass."""

    pass_number: int
    started_ms: int
    finished_ms: int | None = None

    def duration_ms(self) -> int | None:
        if self.finished_ms is None:
            return None
        return self.finished_ms - self.started_ms
