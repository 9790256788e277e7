# -*- coding: utf-8 -*-
from __future__ import annotations

import random
from decimal import Decimal

import pytest

from packet_claim.allocator import MINIMUM_UNIT, allocate_amount, allocate_for, truncate
from packet_claim.types import Mode, Packet


class FixedRandom:
    """Stands in for ``random.Random`` with a constant draw."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.mark.parametrize("mode", [Mode.EVEN, Mode.LUCKY])
def test_last_slot_takes_exact_remainder(mode):
    assert allocate_amount(1, Decimal("0.37"), mode) == Decimal("0.37")


def test_even_split_of_three():
    assert allocate_amount(3, Decimal("3.00"), Mode.EVEN) == Decimal("1.00")


def test_even_split_truncates_to_unit():
    assert allocate_amount(3, Decimal("1.00"), Mode.EVEN) == Decimal("0.33")


def test_lucky_lower_bound_is_minimum_unit():
    amount = allocate_amount(2, Decimal("1.00"), Mode.LUCKY, rng=FixedRandom(0.0))
    assert amount == MINIMUM_UNIT


def test_lucky_upper_bound_leaves_minimum_for_others():
    amount = allocate_amount(2, Decimal("1.00"), Mode.LUCKY, rng=FixedRandom(0.9999999))
    assert amount == Decimal("0.98")
    assert Decimal("1.00") - amount >= MINIMUM_UNIT


def test_lucky_capped_at_twice_average():
    amount = allocate_amount(10, Decimal("10.00"), Mode.LUCKY, rng=FixedRandom(0.9999999))
    assert amount == Decimal("1.99")


def test_lucky_truncates_instead_of_rounding():
    amount = allocate_amount(2, Decimal("1.00"), Mode.LUCKY, rng=FixedRandom(0.5))
    assert amount == Decimal("0.50")
    # 0.01 + 0.98 * 0.0199 = 0.0295..., which rounds to nearest as 0.03
    amount = allocate_amount(2, Decimal("1.00"), Mode.LUCKY, rng=FixedRandom(0.0199))
    assert amount == Decimal("0.02")


def test_truncate_rounds_toward_zero():
    assert truncate(Decimal("0.019"), Decimal("0.01")) == Decimal("0.01")
    assert truncate(Decimal("2.999"), Decimal("0.01")) == Decimal("2.99")


@pytest.mark.parametrize(
    "remain_count,remain_amount,minimum_unit",
    [
        (0, Decimal("1.00"), MINIMUM_UNIT),
        (2, Decimal("1.00"), Decimal("0")),
        (3, Decimal("0.02"), MINIMUM_UNIT),
    ],
)
def test_invalid_inputs_rejected(remain_count, remain_amount, minimum_unit):
    with pytest.raises(ValueError):
        allocate_amount(remain_count, remain_amount, Mode.LUCKY, minimum_unit=minimum_unit)


@pytest.mark.parametrize("mode", [Mode.EVEN, Mode.LUCKY])
@pytest.mark.parametrize("total_count,total_amount", [(2, "1.00"), (7, "0.07"), (10, "100.00"), (33, "12.34")])
def test_full_packet_drains_exactly(mode, total_count, total_amount):
    rng = random.Random(f"{mode}-{total_count}-{total_amount}")
    for _ in range(50):
        remain_count = total_count
        remain_amount = Decimal(total_amount)
        shares = []
        while remain_count:
            share = allocate_amount(remain_count, remain_amount, mode, rng=rng)
            assert MINIMUM_UNIT <= share <= remain_amount
            remain_count -= 1
            remain_amount -= share
            assert remain_amount >= remain_count * MINIMUM_UNIT
            shares.append(share)
        assert remain_amount == 0
        assert sum(shares) == Decimal(total_amount)


def test_allocate_for_reads_snapshot():
    packet = Packet(
        id=1,
        user_id=9,
        mode=Mode.EVEN,
        total_count=4,
        remain_count=2,
        total_amount=Decimal("4.00"),
        remain_amount=Decimal("3.00"),
    )
    # recomputed from the current remainder, not the original split
    assert allocate_for(packet) == Decimal("1.50")


def test_coarser_minimum_unit():
    amount = allocate_amount(4, Decimal("10"), Mode.EVEN, minimum_unit=Decimal("1"))
    assert amount == Decimal("2")
