# -*- coding: utf-8 -*-
"""Public entry-points for the packet claim service."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

from .backoff import BackoffPolicy
from .cancellation import CancellationToken
from .config import ClaimSettings, load_settings
from .errors import ClaimServiceError
from .logging_utils import build_logger, make_hash_fn
from .metrics import DEFAULT_METERS
from .persistence.session import make_engine, make_session_factory
from .repository import SqlAlchemyPacketRepository
from .service import ClaimService
from .types import Mode, Packet, Record


@lru_cache(maxsize=1)
def _bootstrap() -> Tuple[ClaimService, ClaimSettings]:
    settings = load_settings()
    engine = make_engine(settings.db_url)
    session_factory = make_session_factory(engine)
    repository = SqlAlchemyPacketRepository(session_factory)
    logger = build_logger()
    backoff = BackoffPolicy.from_settings(settings)
    if not backoff.bounded:
        logger.warning("retry_policy_unbounded", extra={"env": settings.env, "max_attempts": backoff.max_attempts})
    service = ClaimService(
        repository,
        DEFAULT_METERS,
        logger,
        make_hash_fn(settings.log_salt),
        backoff=backoff,
        minimum_unit=settings.minimum_unit,
    )
    return service, settings


def get_service() -> ClaimService:
    return _bootstrap()[0]


def get_settings() -> ClaimSettings:
    return _bootstrap()[1]


def claim(packet_id: int, claimant_id: int, timeout: Optional[float] = None) -> Record:
    token = CancellationToken.with_timeout(timeout) if timeout is not None else None
    return get_service().claim_by_id(packet_id, claimant_id, token)


__all__ = [
    "CancellationToken",
    "ClaimService",
    "ClaimServiceError",
    "ClaimSettings",
    "Mode",
    "Packet",
    "Record",
    "claim",
    "get_service",
    "get_settings",
]
