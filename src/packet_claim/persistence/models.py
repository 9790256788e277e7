# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from ..types import Mode, Packet, Record


Base = declarative_base()

# SQLite only autoincrements an INTEGER PRIMARY KEY
_ID_TYPE = BigInteger().with_variant(Integer, "sqlite")

AMOUNT_PRECISION = 10
AMOUNT_SCALE = 2
_AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)


def fits_amount_scale(value: Decimal) -> bool:
    """Return ``True`` when ``value`` is stored by the amount columns without rounding."""

    return value == value.quantize(_AMOUNT_QUANTUM, rounding=ROUND_DOWN)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PacketModel(Base):
    __tablename__ = "packets"

    id = Column(_ID_TYPE, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    user_id = Column(BigInteger, nullable=False)
    message = Column(String(256), nullable=False, default="")
    mode = Column(SmallInteger, nullable=False)
    total_count = Column(BigInteger, nullable=False)
    remain_count = Column(BigInteger, nullable=False)
    total_amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    remain_amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)

    records = relationship("RecordModel", back_populates="packet")

    __table_args__ = (
        CheckConstraint("remain_count >= 0 AND remain_count <= total_count", name="ck_packets_remain_count"),
        CheckConstraint("remain_amount >= 0 AND remain_amount <= total_amount", name="ck_packets_remain_amount"),
        CheckConstraint("mode IN (1, 2)", name="ck_packets_mode"),
    )

    def to_snapshot(self) -> Packet:
        return Packet(
            id=int(self.id),
            user_id=int(self.user_id),
            mode=Mode(self.mode),
            total_count=int(self.total_count),
            remain_count=int(self.remain_count),
            total_amount=self.total_amount,
            remain_amount=self.remain_amount,
            message=self.message or "",
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class RecordModel(Base):
    __tablename__ = "packet_records"

    id = Column(_ID_TYPE, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    claimant_id = Column(BigInteger, nullable=False)
    packet_id = Column(BigInteger, ForeignKey("packets.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)

    packet = relationship("PacketModel", back_populates="records")

    __table_args__ = (
        UniqueConstraint("claimant_id", "packet_id", name="uq_packet_records_claimant_packet"),
        CheckConstraint("amount > 0", name="ck_packet_records_amount"),
        Index("ix_packet_records_packet_id", "packet_id"),
    )

    def to_record(self) -> Record:
        return Record(
            id=int(self.id),
            claimant_id=int(self.claimant_id),
            packet_id=int(self.packet_id),
            amount=self.amount,
            created_at=self.created_at,
        )
