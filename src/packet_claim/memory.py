# -*- coding: utf-8 -*-
"""Process-local packet storage honoring the atomic claim contract."""
from __future__ import annotations

import dataclasses
import itertools
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .errors import packet_not_found, storage_failure
from .repository import FaultInjector
from .types import AtomicClaimResult, ClaimOutcome, Mode, Packet, PacketRepository, Record


class InMemoryPacketRepository(PacketRepository):
    """Dictionary-backed gateway for tests and single-process use.

    One storage lock makes each ``atomic_claim`` a single unit, mirroring the
    row lock a database takes during the conditional update.
    """

    def __init__(self, *, fault_injector: Optional[FaultInjector] = None) -> None:
        self._packets: Dict[int, Packet] = {}
        self._records: Dict[Tuple[int, int], Record] = {}
        self._packet_ids = itertools.count(1)
        self._record_ids = itertools.count(1)
        self._guard = threading.Lock()
        self._faults = fault_injector or FaultInjector()

    def add_packet(
        self,
        *,
        user_id: int,
        mode: Mode,
        total_count: int,
        total_amount: Decimal,
        message: str = "",
    ) -> Packet:
        """Store an already funded packet and return its snapshot."""

        now = datetime.now(timezone.utc)
        with self._guard:
            packet = Packet(
                id=next(self._packet_ids),
                user_id=user_id,
                mode=mode,
                total_count=total_count,
                remain_count=total_count,
                total_amount=total_amount,
                remain_amount=total_amount,
                message=message,
                created_at=now,
                updated_at=now,
            )
            self._packets[packet.id] = packet
        return packet

    def find_packet(self, packet_id: int) -> Packet:
        with self._guard:
            packet = self._packets.get(packet_id)
        if packet is None:
            raise packet_not_found(packet_id)
        return packet

    def find_record(self, claimant_id: int, packet_id: int) -> Optional[Record]:
        with self._guard:
            return self._records.get((claimant_id, packet_id))

    def list_records(self, packet_id: int) -> List[Record]:
        with self._guard:
            records = [record for record in self._records.values() if record.packet_id == packet_id]
        return sorted(records, key=lambda record: record.id or 0)

    def atomic_claim(
        self,
        packet_id: int,
        *,
        expected_remain_count: int,
        new_remain_count: int,
        new_remain_amount: Decimal,
        claimant_id: int,
        amount: Decimal,
    ) -> AtomicClaimResult:
        if self._faults.consume("storage_error"):
            raise storage_failure("fault:storage_error", cause=RuntimeError("storage_error"))
        if self._faults.consume("lost_race"):
            return AtomicClaimResult(ClaimOutcome.CONDITION_FAILED)

        with self._guard:
            packet = self._packets.get(packet_id)
            if packet is None:
                raise packet_not_found(packet_id)
            if packet.remain_count != expected_remain_count:
                return AtomicClaimResult(ClaimOutcome.CONDITION_FAILED)
            key = (claimant_id, packet_id)
            if key in self._records:
                return AtomicClaimResult(ClaimOutcome.DUPLICATE)
            now = datetime.now(timezone.utc)
            record = Record(
                id=next(self._record_ids),
                claimant_id=claimant_id,
                packet_id=packet_id,
                amount=amount,
                created_at=now,
            )
            self._packets[packet_id] = dataclasses.replace(
                packet,
                remain_count=new_remain_count,
                remain_amount=new_remain_amount,
                updated_at=now,
            )
            self._records[key] = record
        return AtomicClaimResult(ClaimOutcome.APPLIED, record)
