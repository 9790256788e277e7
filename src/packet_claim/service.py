# -*- coding: utf-8 -*-
"""Domain-level claim service."""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from tenacity import RetryError, Retrying, retry_if_exception_type

from . import errors
from .allocator import MINIMUM_UNIT, allocate_for
from .backoff import BackoffPolicy
from .cancellation import CancellationToken
from .errors import ClaimServiceError, OptimisticLockConflict
from .types import ClaimOutcome, HashFunc, LoggerLike, MeterLike, Packet, PacketRepository, Record


@dataclass(slots=True)
class ClaimService:
    """Grab one share of a packet for a claimant.

    No lock is held here. Each attempt reads outside any transaction, picks an
    amount, and hands the conditional decrement plus record insert to the
    repository as one atomic unit keyed on ``remain_count``. A lost race waits,
    reloads the packet and starts over.
    """

    repository: PacketRepository
    meters: MeterLike
    logger: LoggerLike
    hash_fn: HashFunc
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    minimum_unit: Decimal = MINIMUM_UNIT
    rng: Optional[random.Random] = None

    def claim(
        self,
        packet: Packet,
        claimant_id: int,
        cancellation: Optional[CancellationToken] = None,
    ) -> Record:
        """Return the claimant's record for ``packet``, creating it if needed.

        Calling again for the same claimant returns the stored record instead of
        allocating twice.

        Raises
        ------
        ClaimServiceError
            ``E_PACKET_EXHAUSTED`` when no slot is left, ``E_CLAIM_CANCELLED``
            when the token fires, ``E_CLAIM_CONTENTION`` when the backoff policy
            gives up, ``E_PACKET_INVALID`` when the snapshot cannot fund its
            remaining shares, ``E_PACKET_NOT_FOUND`` or ``E_STORAGE_FAILURE``
            from the repository.
        """

        token = cancellation or CancellationToken()
        hashed = self.hash_fn(claimant_id)
        try:
            return self._claim_with_retries(packet, claimant_id, token, hashed)
        except ClaimServiceError as err:
            self._record_error(err, packet.id, hashed)
            raise

    def claim_by_id(
        self,
        packet_id: int,
        claimant_id: int,
        cancellation: Optional[CancellationToken] = None,
    ) -> Record:
        """Load the current snapshot and claim against it."""

        try:
            packet = self.repository.find_packet(packet_id)
        except ClaimServiceError as err:
            self._record_error(err, packet_id, self.hash_fn(claimant_id))
            raise
        return self.claim(packet, claimant_id, cancellation)

    # Internal helpers ----------------------------------------------------
    def _claim_with_retries(
        self,
        packet: Packet,
        claimant_id: int,
        token: CancellationToken,
        hashed: str,
    ) -> Record:
        retrying = Retrying(
            stop=self.backoff.stop(),
            wait=self.backoff.wait(),
            sleep=lambda seconds: self._sleep(token, seconds),
            retry=retry_if_exception_type(OptimisticLockConflict),
        )
        snapshot = packet
        attempts = 0
        try:
            for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if token.cancelled:
                        raise errors.claim_cancelled(f"{token.reason()} before attempt {attempts}")
                    if attempts > 1:
                        # a snapshot that lost a race is never reused
                        snapshot = self.repository.find_packet(packet.id)
                    record, reused = self._attempt(snapshot, claimant_id, hashed)
                    if reused:
                        self.meters.record_reuse()
                        self.logger.info(
                            "claim_reused",
                            extra={"packet_id": packet.id, "claimant": hashed, "record_id": record.id},
                        )
                    else:
                        self.meters.record_granted(snapshot.mode, attempts)
                        self.logger.info(
                            "claim_granted",
                            extra={
                                "packet_id": packet.id,
                                "claimant": hashed,
                                "record_id": record.id,
                                "amount": record.amount,
                                "attempts": attempts,
                            },
                        )
                    return record
        except RetryError as exc:
            raise errors.claim_contention(
                f"packet_id={packet.id} gave up after {attempts} attempts",
                cause=exc,
            ) from exc
        raise AssertionError("unreachable: retry loop ended without outcome")  # pragma: no cover

    def _attempt(self, snapshot: Packet, claimant_id: int, hashed: str) -> tuple[Record, bool]:
        existing = self.repository.find_record(claimant_id, snapshot.id)
        if existing is not None:
            return existing, True

        if snapshot.exhausted:
            raise errors.packet_exhausted(snapshot.id)

        try:
            amount = allocate_for(snapshot, minimum_unit=self.minimum_unit, rng=self.rng)
        except ValueError as exc:
            raise errors.packet_invalid(snapshot.id, str(exc), cause=exc) from exc
        result = self.repository.atomic_claim(
            snapshot.id,
            expected_remain_count=snapshot.remain_count,
            new_remain_count=snapshot.remain_count - 1,
            new_remain_amount=snapshot.remain_amount - amount,
            claimant_id=claimant_id,
            amount=amount,
        )

        if result.outcome is ClaimOutcome.APPLIED and result.record is not None:
            return result.record, False

        if result.outcome is ClaimOutcome.DUPLICATE:
            # the same claimant won on another version token
            existing = self.repository.find_record(claimant_id, snapshot.id)
            if existing is not None:
                return existing, True

        self.meters.record_conflict()
        self.logger.warning(
            "claim_conflict",
            extra={
                "packet_id": snapshot.id,
                "claimant": hashed,
                "expected_remain_count": snapshot.remain_count,
                "outcome": result.outcome.value,
            },
        )
        raise OptimisticLockConflict(f"packet {snapshot.id} moved past remain_count={snapshot.remain_count}")

    @staticmethod
    def _sleep(token: CancellationToken, seconds: float) -> None:
        if token.wait(seconds):
            raise errors.claim_cancelled(f"{token.reason()} during {seconds:.3f}s backoff")

    def _record_error(self, err: ClaimServiceError, packet_id: int, hashed: str) -> None:
        extra = {"packet_id": packet_id, "claimant": hashed, "code": err.code, "details": err.detail.details}
        if err.code == errors.EXHAUSTED:
            self.meters.record_exhausted()
            self.logger.info("claim_exhausted", extra=extra)
        elif err.code == errors.CANCELLED:
            self.meters.record_cancelled()
            self.logger.warning("claim_cancelled", extra=extra)
        elif err.code == errors.CONTENTION:
            self.meters.record_failure(err.code)
            self.logger.error("claim_contention", extra=extra)
        else:
            self.meters.record_failure(err.code)
            self.logger.error("claim_failed", extra=extra)
