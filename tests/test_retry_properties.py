"""Property-based tests for retry logic with exponential backoff.

Feature: delta-sync
"""

import asyncio

import pytest
import structlog
from hypothesis import given, settings, strategies as st

from deltasync.utils.retry import backoff_delay, exponential_backoff_retry

log = structlog.stdlib.get_logger()


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@given(
    st.integers(min_value=1, max_value=5),
    st.floats(min_value=0.01, max_value=2.0),
)
@settings(max_examples=50, deadline=None)
def test_property_8_exponential_backoff_behavior(num_failures: int, base_delay: float):
    """Property 8: Exponential backoff behavior.

    For any sequence of transmission errors, the delay after failed attempt n
    is base_delay * 2**n, so each delay doubles the previous one.

    **Feature: delta-sync, Property 8: Exponential backoff behavior**
    """
    log.info(
        "test_property_8_exponential_backoff_behavior",
        num_failures=num_failures,
        base_delay=base_delay,
    )

    sleep = RecordingSleep()
    call_count = 0

    @exponential_backoff_retry(
        max_attempts=num_failures + 1,
        base_delay=base_delay,
        max_delay=1000.0,
        exceptions=(ConnectionError,),
        sleep=sleep,
    )
    async def flaky_send():
        nonlocal call_count
        call_count += 1
        if call_count <= num_failures:
            raise ConnectionError(f"Simulated failure {call_count}")
        return "sent"

    result = asyncio.run(flaky_send())

    assert result == "sent"
    assert call_count == num_failures + 1
    assert sleep.delays == pytest.approx(
        [base_delay * (2**attempt) for attempt in range(1, num_failures + 1)]
    )
    for previous, current in zip(sleep.delays, sleep.delays[1:]):
        assert current == pytest.approx(previous * 2)


@given(st.integers(min_value=1, max_value=10))
@settings(max_examples=50, deadline=None)
def test_exponential_backoff_max_attempts(max_attempts: int):
    """The wrapped call is attempted exactly max_attempts times, then re-raises."""
    sleep = RecordingSleep()
    call_count = 0

    @exponential_backoff_retry(max_attempts=max_attempts, sleep=sleep)
    async def always_failing():
        nonlocal call_count
        call_count += 1
        raise ValueError("Always fails")

    with pytest.raises(ValueError):
        asyncio.run(always_failing())

    assert call_count == max_attempts
    assert len(sleep.delays) == max_attempts - 1


def test_unlisted_exceptions_are_not_retried():
    sleep = RecordingSleep()
    call_count = 0

    @exponential_backoff_retry(max_attempts=5, exceptions=(ConnectionError,), sleep=sleep)
    async def broken():
        nonlocal call_count
        call_count += 1
        raise KeyError("bug")

    with pytest.raises(KeyError):
        asyncio.run(broken())

    assert call_count == 1
    assert sleep.delays == []


@given(st.integers(min_value=1, max_value=20))
def test_backoff_delay_is_capped(attempt: int):
    assert backoff_delay(attempt, 1.0, 60.0) == min(2.0**attempt, 60.0)


def test_default_delays_are_two_then_four_seconds():
    assert [backoff_delay(n, 1.0) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]


@given(st.integers(min_value=1, max_value=30))
def test_backoff_delay_is_uncapped_by_default(attempt: int):
    assert backoff_delay(attempt, 1.0) == 2.0**attempt


def test_default_decorator_schedule_has_no_ceiling():
    sleep = RecordingSleep()

    @exponential_backoff_retry(max_attempts=8, sleep=sleep)
    async def unreachable():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        asyncio.run(unreachable())

    assert sleep.delays == [2.0, 4.0, 8.0, 16.0, 32.0, 64.0, 128.0]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        exponential_backoff_retry(max_attempts=0)
