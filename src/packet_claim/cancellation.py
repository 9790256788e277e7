# -*- coding: utf-8 -*-
"""Caller-owned cancellation and deadline signal."""
from __future__ import annotations

import threading
import time
from typing import Optional

from .types import Clock


class SystemClock(Clock):
    """Default implementation backed by the stdlib monotonic clock."""

    def monotonic(self) -> float:
        return time.monotonic()


class CancellationToken:
    """Cancellation flag with an optional monotonic deadline.

    ``cancel`` may be called from any thread. ``wait`` sleeps for a backoff
    interval but returns early once the token is cancelled or the deadline
    passes.
    """

    def __init__(self, *, deadline: Optional[float] = None, clock: Optional[Clock] = None) -> None:
        self._event = threading.Event()
        self._clock = clock or SystemClock()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float, *, clock: Optional[Clock] = None) -> "CancellationToken":
        active_clock = clock or SystemClock()
        return cls(deadline=active_clock.monotonic() + seconds, clock=active_clock)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def cancel(self) -> None:
        self._event.set()

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(self._deadline - self._clock.monotonic(), 0.0)

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled"
        return "deadline_exceeded"

    def wait(self, seconds: float) -> bool:
        """Block up to ``seconds``; return ``True`` when cancelled meanwhile."""

        timeout = max(seconds, 0.0)
        remaining = self.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        if self._event.wait(timeout):
            return True
        return self.cancelled
