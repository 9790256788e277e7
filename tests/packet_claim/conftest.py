# -*- coding: utf-8 -*-
from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal

import pytest
from prometheus_client import CollectorRegistry
from sqlalchemy.orm import Session, sessionmaker

from packet_claim.backoff import BackoffPolicy
from packet_claim.logging_utils import build_logger, make_hash_fn
from packet_claim.memory import InMemoryPacketRepository
from packet_claim.metrics import ClaimMeters
from packet_claim.persistence.models import Base, PacketModel
from packet_claim.persistence.session import make_engine, make_session_factory
from packet_claim.repository import FaultInjector, SqlAlchemyPacketRepository
from packet_claim.service import ClaimService
from packet_claim.types import Mode, Packet, PacketRepository

FAST_BACKOFF = BackoffPolicy(initial_seconds=0.001, max_seconds=0.01, jitter_seconds=0.002, max_attempts=200)


@pytest.fixture()
def engine(tmp_path) -> Iterator:
    db_path = tmp_path / "packets.sqlite"
    engine = make_engine(f"sqlite+pysqlite:///{db_path}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return make_session_factory(engine)


@pytest.fixture()
def session(session_factory: sessionmaker) -> Iterator[Session]:
    with session_factory() as sess:
        yield sess


@pytest.fixture()
def fault_injector() -> FaultInjector:
    return FaultInjector()


@pytest.fixture()
def repository(session_factory: sessionmaker, fault_injector: FaultInjector) -> SqlAlchemyPacketRepository:
    return SqlAlchemyPacketRepository(session_factory, fault_injector=fault_injector)


@pytest.fixture()
def memory_repository(fault_injector: FaultInjector) -> InMemoryPacketRepository:
    return InMemoryPacketRepository(fault_injector=fault_injector)


@pytest.fixture()
def meters() -> ClaimMeters:
    return ClaimMeters(CollectorRegistry())


def make_service(repository: PacketRepository, meters: ClaimMeters, **kwargs) -> ClaimService:
    kwargs.setdefault("backoff", FAST_BACKOFF)
    return ClaimService(
        repository,
        meters,
        build_logger("test-packet-claim"),
        make_hash_fn("test-salt"),
        **kwargs,
    )


@pytest.fixture()
def service(repository: SqlAlchemyPacketRepository, meters: ClaimMeters) -> ClaimService:
    return make_service(repository, meters)


@pytest.fixture()
def memory_service(memory_repository: InMemoryPacketRepository, meters: ClaimMeters) -> ClaimService:
    return make_service(memory_repository, meters)


def seed_packet(
    session: Session,
    *,
    mode: Mode = Mode.LUCKY,
    total_count: int = 2,
    total_amount: str = "1.00",
    user_id: int = 1,
    message: str = "",
) -> Packet:
    model = PacketModel(
        user_id=user_id,
        message=message,
        mode=int(mode),
        total_count=total_count,
        remain_count=total_count,
        total_amount=Decimal(total_amount),
        remain_amount=Decimal(total_amount),
    )
    session.add(model)
    session.commit()
    return model.to_snapshot()


def metric(meters: ClaimMeters, name: str, **labels: str) -> float:
    value = meters.registry.get_sample_value(name, labels)
    return value or 0.0


def assert_ledger_balanced(repository: PacketRepository, packet_id: int) -> None:
    packet = repository.find_packet(packet_id)
    records = repository.list_records(packet_id)
    assert packet.total_amount - packet.remain_amount == sum((r.amount for r in records), Decimal("0"))
    assert packet.total_count - packet.remain_count == len(records)
    assert 0 <= packet.remain_count <= packet.total_count
    if packet.remain_count == 0:
        assert packet.remain_amount == 0
