# -*- coding: utf-8 -*-
"""Prometheus metrics for the claim service."""
from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from .types import MeterLike, Mode

CLAIM_RESULT_LABELS = ("result",)
CLAIM_FAILURE_LABELS = ("reason",)
ATTEMPT_BUCKETS = (1, 2, 3, 5, 8, 13, 21, 34, 55)


class ClaimMeters(MeterLike):
    """Wraps Prometheus primitives behind a friendly interface."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or REGISTRY
        self._claims = Counter(
            "packet_claims_total",
            "Claim results by outcome",
            CLAIM_RESULT_LABELS,
            registry=self._registry,
        )
        self._conflicts = Counter(
            "packet_claim_conflicts_total",
            "Lost optimistic-lock races",
            registry=self._registry,
        )
        self._failures = Counter(
            "packet_claim_failures_total",
            "Claims that ended in an error",
            CLAIM_FAILURE_LABELS,
            registry=self._registry,
        )
        self._attempts = Histogram(
            "packet_claim_attempts",
            "Commit attempts needed per granted claim",
            buckets=ATTEMPT_BUCKETS,
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the registry backing the meters."""

        return self._registry

    def record_granted(self, mode: Mode, attempts: int) -> None:
        self._claims.labels(result=f"granted_{Mode(mode).name.lower()}").inc()
        self._attempts.observe(attempts)

    def record_reuse(self) -> None:
        self._claims.labels(result="reused").inc()

    def record_conflict(self) -> None:
        self._conflicts.inc()

    def record_exhausted(self) -> None:
        self._claims.labels(result="exhausted").inc()

    def record_cancelled(self) -> None:
        self._claims.labels(result="cancelled").inc()

    def record_failure(self, reason: str) -> None:
        self._failures.labels(reason=reason).inc()


DEFAULT_METERS = ClaimMeters()
