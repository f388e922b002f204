from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic seconds for round timing.

    RoundClock and the pygame shell read time only through this, so tests can
    swap in a fake that advances on demand.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """time.monotonic() backed clock used by the app."""

    def now(self) -> float:
        return time.monotonic()


def elapsed_ms(started_at_s: float, now_s: float) -> float:
    """Milliseconds between two clock readings, never negative."""
    return max(0.0, (now_s - started_at_s) * 1000.0)
