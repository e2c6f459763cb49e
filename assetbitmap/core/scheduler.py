"""Single-slot expiration timer.

The scheduler owns at most one pending asyncio timer. Arming always cancels
the previous timer first; a ttl of 0 only cancels.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Callable

logger = logging.getLogger(__name__)


def normalize_ttl(value: object) -> float:
    """Coerce a time-to-live to a finite, non-negative number of seconds (else 0)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if math.isnan(value) or math.isinf(value) or value < 0:
        return 0
    return value


class ExpirationScheduler:
    """Cancellable, re-armable timer that fires a callback once.

    Attributes:
        ttl: Seconds used by the most recent arm() call
        armed_at: Monotonic timestamp of the most recent arm() call
    """

    def __init__(self, callback: Callable[[], None]) -> None:
        """Create an idle scheduler.

        Args:
            callback: Invoked on the event loop when the timer fires
        """
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self.ttl: float = 0
        self.armed_at: float | None = None

    @property
    def pending(self) -> bool:
        """True while a timer is scheduled and has not fired or been cancelled."""
        return self._handle is not None

    @property
    def deadline(self) -> float | None:
        """Monotonic time at which the pending timer fires."""
        if self._handle is None or self.armed_at is None:
            return None
        return self.armed_at + self.ttl

    def arm(self, ttl: float) -> bool:
        """Cancel any pending timer and schedule a new one after ``ttl`` seconds.

        Args:
            ttl: Seconds until firing; 0 (or invalid) only cancels

        Returns:
            True if a timer is now pending
        """
        self.cancel()
        self.ttl = normalize_ttl(ttl)
        if self.ttl <= 0:
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop; expiration after %ss not scheduled", self.ttl
            )
            return False

        self.armed_at = time.monotonic()
        self._handle = loop.call_later(self.ttl, self._fire)
        logger.debug("Expiration armed for %ss", self.ttl)
        return True

    def cancel(self) -> None:
        """Cancel the pending timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Expiration cancelled")

    def _fire(self) -> None:
        self._handle = None
        self._callback()

    def __repr__(self) -> str:
        return f"ExpirationScheduler(ttl={self.ttl}, pending={self.pending})"
