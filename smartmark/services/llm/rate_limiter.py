from __future__ import annotations

import time
from typing import Callable, Optional

from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Spacing between calls to an external classifier.

    Each instance keeps its own last-call timestamp, so two clients (or two
    test runs) never share pacing state.

    pause():   sleep the full interval, used between bulk records.
    acquire(): sleep only what is left of the interval since the previous
               acquire(), used by clients in front of every request.
    """

    def __init__(
        self,
        min_interval_ms: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {min_interval_ms}")
        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    @property
    def interval_s(self) -> float:
        return self.min_interval_ms / 1000.0

    def pause(self) -> None:
        if self.min_interval_ms > 0:
            self._sleep(self.interval_s)

    def acquire(self) -> float:
        """Block until the interval has elapsed; returns seconds waited."""
        waited = 0.0
        now = self._clock()
        if self._last_call is not None:
            remaining = self.interval_s - (now - self._last_call)
            if remaining > 0:
                logger.debug("Rate limit: waiting %.3fs", remaining)
                self._sleep(remaining)
                waited = remaining
                now = self._clock()
        self._last_call = now
        return waited


__all__ = ["RateLimiter"]
