# -*- coding: utf-8 -*-
"""Share allocation for a single claim.

Everything here is a pure function of its inputs so the arithmetic can be
tested without storage. Amounts are :class:`~decimal.Decimal` and every result is
truncated toward zero to the precision of ``minimum_unit``.
"""
from __future__ import annotations

import random
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from .types import Mode, Packet

MINIMUM_UNIT = Decimal("0.01")

_SYSTEM_RANDOM = random.SystemRandom()


def truncate(value: Decimal, unit: Decimal) -> Decimal:
    """Cut ``value`` down to the number of decimal places of ``unit``."""

    return value.quantize(unit, rounding=ROUND_DOWN)


def allocate_amount(
    remain_count: int,
    remain_amount: Decimal,
    mode: Mode | int,
    *,
    minimum_unit: Decimal = MINIMUM_UNIT,
    rng: Optional[random.Random] = None,
) -> Decimal:
    """Return the share for the next claimant.

    Parameters
    ----------
    remain_count:
        Slots left before this claim, at least 1.
    remain_amount:
        Amount left before this claim.
    mode:
        :class:`Mode` of the packet.
    minimum_unit:
        Smallest payable increment and lower bound of every share.
    rng:
        Source of the lucky-mode draw. Defaults to :class:`random.SystemRandom`,
        which reads OS entropy and is safe to share between threads.

    Returns
    -------
    Decimal
        ``a`` with ``minimum_unit <= a <= remain_amount`` that leaves at least
        ``minimum_unit`` for each of the other remaining slots.
    """

    if remain_count < 1:
        raise ValueError(f"remain_count must be positive, got {remain_count}")
    if minimum_unit <= 0:
        raise ValueError(f"minimum_unit must be positive, got {minimum_unit}")
    if remain_amount < minimum_unit * remain_count:
        raise ValueError(
            f"remain_amount {remain_amount} cannot cover {remain_count} shares of {minimum_unit}"
        )

    # last slot takes everything so no residue is stranded
    if remain_count == 1:
        return remain_amount

    count = Decimal(remain_count)
    average = remain_amount / count
    packet_mode = Mode(mode)

    if packet_mode is Mode.EVEN:
        return truncate(average, minimum_unit)

    lower = minimum_unit
    upper = remain_amount - (count - 1) * lower
    if average + average < upper:
        upper = average + average

    draw = Decimal((rng or _SYSTEM_RANDOM).random())
    return truncate(lower + (upper - lower) * draw, minimum_unit)


def allocate_for(
    packet: Packet,
    *,
    minimum_unit: Decimal = MINIMUM_UNIT,
    rng: Optional[random.Random] = None,
) -> Decimal:
    """Allocate against a packet snapshot."""

    return allocate_amount(
        packet.remain_count,
        packet.remain_amount,
        packet.mode,
        minimum_unit=minimum_unit,
        rng=rng,
    )
