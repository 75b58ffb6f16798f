from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

from aws_provisioner.waiter import CancelToken

if TYPE_CHECKING:
    from conftest import FakeClock


def test_cancel_sets_reason() -> None:
    token = CancelToken()
    assert not token.cancelled
    assert token.remaining() is None

    token.cancel("user abort")

    assert token.cancelled
    assert token.reason == "user abort"


def test_deadline_fires_token(clock: FakeClock) -> None:
    token = CancelToken(timeout=30, clock=clock)
    assert token.remaining() == 30

    clock.now += 30

    assert token.cancelled
    assert token.remaining() == 0
    assert token.reason == "deadline exceeded"


def test_explicit_cancel_reason_wins_over_deadline(clock: FakeClock) -> None:
    token = CancelToken(timeout=5, clock=clock)
    token.cancel("interrupted")
    clock.now += 10

    assert token.reason == "interrupted"


def test_sleep_returns_false_when_not_cancelled() -> None:
    assert CancelToken().sleep(0.01) is False


def test_sleep_wakes_up_on_cancel() -> None:
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel, args=("stop",))
    timer.start()
    start = time.monotonic()
    try:
        assert token.sleep(30) is True
    finally:
        timer.cancel()

    assert time.monotonic() - start < 5


def test_sleep_stops_at_outer_deadline() -> None:
    token = CancelToken(timeout=0.05)
    start = time.monotonic()

    assert token.sleep(30) is True
    assert time.monotonic() - start < 5
    assert token.reason == "deadline exceeded"
