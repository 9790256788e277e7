# -*- coding: utf-8 -*-
"""Typed settings for the packet claim service."""
from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .persistence.models import AMOUNT_SCALE

ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\u202a-\u202e\ufeff\u2060]")


def _normalise_string(value: Any) -> Any:
    if isinstance(value, str):
        return ZERO_WIDTH_RE.sub("", value).strip()
    return value


class ClaimSettings(BaseSettings):
    """Settings read from ``PACKET_CLAIM_*`` environment variables.

    ``max_attempts`` of 0 leaves the retry loop bounded only by the caller's
    cancellation token and ``time_budget_seconds``.
    """

    model_config = SettingsConfigDict(env_prefix="PACKET_CLAIM_", extra="forbid")

    db_url: str = Field(default="sqlite+pysqlite:///:memory:", min_length=1)
    minimum_unit: Decimal = Field(default=Decimal("0.01"), gt=0)
    max_attempts: int = Field(default=50, ge=0)
    time_budget_seconds: Optional[float] = Field(default=None, gt=0)
    backoff_initial_seconds: float = Field(default=0.05, ge=0)
    backoff_max_seconds: float = Field(default=1.0, ge=0)
    backoff_jitter_seconds: float = Field(default=0.05, ge=0)
    log_salt: str = Field(default="development-salt")
    env: Literal["dev", "stage", "prod"] = "dev"

    @field_validator("db_url", "log_salt", "env", mode="before")
    @classmethod
    def _clean(cls, value: Any) -> Any:
        return _normalise_string(value)

    @field_validator("minimum_unit")
    @classmethod
    def _check_unit_scale(cls, value: Decimal) -> Decimal:
        places = -value.as_tuple().exponent
        if places > AMOUNT_SCALE:
            raise ValueError(f"minimum_unit must have at most {AMOUNT_SCALE} decimal places, got {value}")
        return value

    @model_validator(mode="after")
    def _check_backoff(self) -> "ClaimSettings":
        if self.backoff_max_seconds < self.backoff_initial_seconds:
            raise ValueError("backoff_max_seconds must be >= backoff_initial_seconds")
        return self


def load_settings(**overrides: Any) -> ClaimSettings:
    """Read settings from the environment, letting keyword overrides win."""

    return ClaimSettings(**overrides)


__all__ = ["ClaimSettings", "load_settings"]
