# -*- coding: utf-8 -*-
from __future__ import annotations

import threading
import time

from packet_claim.cancellation import CancellationToken


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def monotonic(self) -> float:
        return self.now


def test_token_without_deadline_never_expires():
    token = CancellationToken()
    assert token.deadline is None
    assert token.remaining() is None
    assert not token.cancelled
    assert token.wait(0.01) is False


def test_explicit_cancel():
    token = CancellationToken()
    token.cancel()
    assert token.cancelled
    assert token.reason() == "cancelled"
    assert token.wait(10.0) is True


def test_deadline_expires_with_clock():
    clock = FakeClock()
    token = CancellationToken.with_timeout(5.0, clock=clock)
    assert token.deadline == 105.0
    assert token.remaining() == 5.0
    assert not token.cancelled

    clock.now = 106.0
    assert token.cancelled
    assert token.remaining() == 0.0
    assert token.reason() == "deadline_exceeded"
    assert token.wait(10.0) is True


def test_wait_is_cut_short_by_cancel_from_other_thread():
    token = CancellationToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    started = time.monotonic()
    try:
        assert token.wait(5.0) is True
    finally:
        timer.cancel()
    assert time.monotonic() - started < 4.0


def test_wait_is_cut_short_by_deadline():
    token = CancellationToken.with_timeout(0.05)
    started = time.monotonic()
    assert token.wait(5.0) is True
    assert time.monotonic() - started < 4.0
