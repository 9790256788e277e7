# -*- coding: utf-8 -*-
"""Backoff and stop policy for claim retries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tenacity import stop_after_attempt, stop_after_delay, stop_any, stop_never, wait_exponential, wait_random
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from .config import ClaimSettings


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Exponential backoff with jitter and an optional attempt/time cap.

    ``max_attempts`` of 0 means no attempt cap; the loop then ends only on
    success, a terminal error, cancellation or ``time_budget_seconds``.
    """

    initial_seconds: float = 0.05
    max_seconds: float = 1.0
    jitter_seconds: float = 0.05
    max_attempts: int = 50
    time_budget_seconds: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: ClaimSettings) -> "BackoffPolicy":
        return cls(
            initial_seconds=settings.backoff_initial_seconds,
            max_seconds=settings.backoff_max_seconds,
            jitter_seconds=settings.backoff_jitter_seconds,
            max_attempts=settings.max_attempts,
            time_budget_seconds=settings.time_budget_seconds,
        )

    @property
    def bounded(self) -> bool:
        return self.max_attempts > 0 or self.time_budget_seconds is not None

    def stop(self) -> stop_base:
        conditions: list[stop_base] = []
        if self.max_attempts > 0:
            conditions.append(stop_after_attempt(self.max_attempts))
        if self.time_budget_seconds is not None:
            conditions.append(stop_after_delay(self.time_budget_seconds))
        if not conditions:
            return stop_never
        return stop_any(*conditions)

    def wait(self) -> wait_base:
        # jitter is added on top of the capped exponential delay
        return wait_exponential(multiplier=self.initial_seconds, max=self.max_seconds) + wait_random(
            0, self.jitter_seconds
        )
