# -*- coding: utf-8 -*-
"""Type definitions for the packet claim service."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Protocol


class Mode(enum.IntEnum):
    """Distribution mode of a packet."""

    EVEN = 1
    LUCKY = 2


class ClaimOutcome(enum.Enum):
    """Result of one atomic claim attempt against storage."""

    APPLIED = "applied"
    CONDITION_FAILED = "condition_failed"
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True)
class ErrorDetail:
    """Structured error payload returned to callers.

    Attributes
    ----------
    code:
        Machine-readable error code.
    message:
        Human-facing message.
    details:
        Additional diagnostic details for operators.
    """

    code: str
    message: str
    details: str


@dataclass(frozen=True, slots=True)
class Packet:
    """Read-only snapshot of a packet row."""

    id: int
    user_id: int
    mode: Mode
    total_count: int
    remain_count: int
    total_amount: Decimal
    remain_amount: Decimal
    message: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def exhausted(self) -> bool:
        return self.remain_count == 0


@dataclass(frozen=True, slots=True)
class Record:
    """One claimant's share of a packet."""

    id: Optional[int]
    claimant_id: int
    packet_id: int
    amount: Decimal
    created_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class AtomicClaimResult:
    outcome: ClaimOutcome
    record: Optional[Record] = None


class LoggerLike(Protocol):
    """Protocol representing the structured logger adapter used by the service."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


class MeterLike(Protocol):
    """Protocol capturing the observability hooks consumed by the service."""

    def record_granted(self, mode: Mode, attempts: int) -> None: ...

    def record_reuse(self) -> None: ...

    def record_conflict(self) -> None: ...

    def record_exhausted(self) -> None: ...

    def record_cancelled(self) -> None: ...

    def record_failure(self, reason: str) -> None: ...


class HashFunc(Protocol):
    """Hashing hook applied to claimant ids before they are logged."""

    def __call__(self, claimant_id: int) -> str: ...


class Clock(Protocol):
    """Clock protocol to simplify deterministic testing."""

    def monotonic(self) -> float: ...


class PacketRepository(Protocol):
    """Persistence contract consumed by the claim service.

    ``atomic_claim`` must apply the conditional decrement and the record insert
    as one unit. Among concurrent calls sharing ``packet_id`` and
    ``expected_remain_count`` at most one may report ``APPLIED``.
    """

    def find_packet(self, packet_id: int) -> Packet: ...

    def find_record(self, claimant_id: int, packet_id: int) -> Optional[Record]: ...

    def atomic_claim(
        self,
        packet_id: int,
        *,
        expected_remain_count: int,
        new_remain_count: int,
        new_remain_amount: Decimal,
        claimant_id: int,
        amount: Decimal,
    ) -> AtomicClaimResult: ...

    def list_records(self, packet_id: int) -> List[Record]: ...
