# -*- coding: utf-8 -*-
"""SQLAlchemy gateway for packets and claim records."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import packet_not_found, storage_failure
from .persistence.models import AMOUNT_SCALE, PacketModel, RecordModel, fits_amount_scale
from .persistence.session import session_scope
from .types import AtomicClaimResult, ClaimOutcome, Packet, PacketRepository, Record

UNIQUE_RECORD_CONSTRAINT = "uq_packet_records_claimant_packet"


@dataclass(slots=True)
class FaultInjector:
    """Deterministic fault injection toggles used only in tests.

    ``lost_race`` makes the next N commit attempts report a failed condition
    without touching storage; ``storage_error`` makes them raise.
    """

    lost_race: int = 0
    storage_error: int = 0
    _guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def consume(self, name: str) -> bool:
        with self._guard:
            remaining = getattr(self, name, 0)
            if remaining > 0:
                setattr(self, name, remaining - 1)
                return True
            return False

    def raise_if(self, name: str) -> None:
        if self.consume(name):
            raise OperationalError(f"fault:{name}", params={}, orig=RuntimeError(name))


class SqlAlchemyPacketRepository(PacketRepository):
    """Concrete gateway backed by SQLAlchemy sessions.

    The version token is ``remain_count``: the decrement only matches while the
    stored count still equals the caller's snapshot.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        fault_injector: Optional[FaultInjector] = None,
    ) -> None:
        self._session_factory = session_factory
        self._faults = fault_injector or FaultInjector()

    # Public API -----------------------------------------------------------
    def find_packet(self, packet_id: int) -> Packet:
        try:
            with self._session_factory() as session:
                model = session.get(PacketModel, packet_id)
                if model is None:
                    raise packet_not_found(packet_id)
                return model.to_snapshot()
        except SQLAlchemyError as exc:
            raise storage_failure(f"find_packet failed: {exc}", cause=exc) from exc

    def find_record(self, claimant_id: int, packet_id: int) -> Optional[Record]:
        stmt = select(RecordModel).where(
            RecordModel.claimant_id == claimant_id,
            RecordModel.packet_id == packet_id,
        )
        try:
            with self._session_factory() as session:
                model = session.execute(stmt).scalar_one_or_none()
                return model.to_record() if model is not None else None
        except SQLAlchemyError as exc:
            raise storage_failure(f"find_record failed: {exc}", cause=exc) from exc

    def list_records(self, packet_id: int) -> List[Record]:
        stmt = select(RecordModel).where(RecordModel.packet_id == packet_id).order_by(RecordModel.id)
        try:
            with self._session_factory() as session:
                return [model.to_record() for model in session.execute(stmt).scalars()]
        except SQLAlchemyError as exc:
            raise storage_failure(f"list_records failed: {exc}", cause=exc) from exc

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
        if not (fits_amount_scale(amount) and fits_amount_scale(new_remain_amount)):
            raise storage_failure(
                f"atomic_claim rejected: amount={amount} remain_amount={new_remain_amount} exceed scale {AMOUNT_SCALE}"
            )
        try:
            with session_scope(self._session_factory) as session:
                self._faults.raise_if("storage_error")
                if self._faults.consume("lost_race"):
                    return AtomicClaimResult(ClaimOutcome.CONDITION_FAILED)
                result = session.execute(
                    update(PacketModel)
                    .where(
                        PacketModel.id == packet_id,
                        PacketModel.remain_count == expected_remain_count,
                    )
                    .values(remain_count=new_remain_count, remain_amount=new_remain_amount)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return AtomicClaimResult(ClaimOutcome.CONDITION_FAILED)
                model = RecordModel(claimant_id=claimant_id, packet_id=packet_id, amount=amount)
                session.add(model)
                session.flush()
                # reload so the snapshot matches what find_record returns
                session.refresh(model)
                record = model.to_record()
            return AtomicClaimResult(ClaimOutcome.APPLIED, record)
        except IntegrityError as exc:
            if self._is_duplicate_record(exc):
                return AtomicClaimResult(ClaimOutcome.DUPLICATE)
            raise storage_failure(f"atomic_claim rejected: {exc.orig or exc}", cause=exc) from exc
        except SQLAlchemyError as exc:
            raise storage_failure(f"atomic_claim failed: {exc}", cause=exc) from exc

    # Internal helpers ----------------------------------------------------
    @staticmethod
    def _is_duplicate_record(exc: IntegrityError) -> bool:
        message = str(exc.orig or exc)
        if UNIQUE_RECORD_CONSTRAINT in message:
            return True
        # sqlite names the columns instead of the constraint
        return "UNIQUE" in message and "claimant_id" in message and "packet_id" in message
