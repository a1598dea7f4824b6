from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Engines take one of these instead of reading wall time, so trials can be
    replayed with a fake clock.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


def elapsed_ms(clock: Clock, since_s: float | None) -> int:
    """Whole milliseconds elapsed on ``clock`` since ``since_s`` (0 if unset)."""

    if since_s is None:
        return 0
    return max(0, int(round((clock.now() - since_s) * 1000.0)))
