# -*- coding: utf-8 -*-
"""Custom error hierarchy with human messages and machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .types import ErrorDetail

EXHAUSTED = "E_PACKET_EXHAUSTED"
CANCELLED = "E_CLAIM_CANCELLED"
CONTENTION = "E_CLAIM_CONTENTION"
STORAGE_FAILURE = "E_STORAGE_FAILURE"
NOT_FOUND = "E_PACKET_NOT_FOUND"
INVALID = "E_PACKET_INVALID"


@dataclass(eq=False)
class ClaimServiceError(Exception):
    """Base class for domain errors exposed to callers.

    Not frozen: context managers assign ``__traceback__`` on the way out.
    """

    detail: ErrorDetail
    cause: Optional[Exception] = None

    @property
    def code(self) -> str:
        return self.detail.code

    def __str__(self) -> str:  # pragma: no cover - human readable path
        return f"{self.detail.code}: {self.detail.message} ({self.detail.details})"


class OptimisticLockConflict(Exception):
    """Lost race on the remain_count version token; retried internally."""


def packet_exhausted(packet_id: int) -> ClaimServiceError:
    return ClaimServiceError(
        ErrorDetail(EXHAUSTED, "All shares of this packet have been claimed.", f"packet_id={packet_id}"),
    )


def claim_cancelled(message: str) -> ClaimServiceError:
    return ClaimServiceError(
        ErrorDetail(CANCELLED, "The claim was cancelled before it completed.", message),
    )


def claim_contention(message: str, *, cause: Optional[Exception] = None) -> ClaimServiceError:
    return ClaimServiceError(
        ErrorDetail(CONTENTION, "Too many concurrent claims; try again later.", message),
        cause,
    )


def storage_failure(message: str, *, cause: Optional[Exception] = None) -> ClaimServiceError:
    return ClaimServiceError(
        ErrorDetail(STORAGE_FAILURE, "Packet storage is unavailable.", message),
        cause,
    )


def packet_not_found(packet_id: int) -> ClaimServiceError:
    return ClaimServiceError(
        ErrorDetail(NOT_FOUND, "Packet does not exist.", f"packet_id={packet_id}"),
    )


def packet_invalid(packet_id: int, message: str, *, cause: Optional[Exception] = None) -> ClaimServiceError:
    return ClaimServiceError(
        ErrorDetail(INVALID, "Packet cannot fund its remaining shares.", f"packet_id={packet_id} {message}"),
        cause,
    )
