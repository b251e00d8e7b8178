"""Timeouts and Retry: deadlines map to OperationTimeoutError, retries back off."""

import asyncio

import pytest

from hive.core.errors import DatabaseError, OperationTimeoutError
from hive.core.timeouts import with_retry, with_timeout


async def test_with_timeout_returns_result():
    async def quick():
        return 42

    assert await with_timeout(quick(), 1) == 42


async def test_with_timeout_raises_domain_error():
    with pytest.raises(OperationTimeoutError) as exc_info:
        await with_timeout(asyncio.sleep(1), 0.01, "Stats query timed out")
    assert exc_info.value.http_status == 504
    assert "Stats query timed out" in exc_info.value.message


async def test_with_retry_backs_off_then_succeeds():
    delays = []
    attempts = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise DatabaseError("connection reset", "select")
        return "ok"

    result = await with_retry(
        flaky, max_attempts=3, initial_delay=1.0, retry_on=(DatabaseError,), sleep=fake_sleep,
    )
    assert result == "ok"
    assert delays == [1.0, 2.0]


async def test_with_retry_reraises_last_error():
    async def fake_sleep(seconds):
        pass

    async def broken():
        raise DatabaseError("down", "select")

    with pytest.raises(DatabaseError):
        await with_retry(broken, max_attempts=2, sleep=fake_sleep)


async def test_with_retry_does_not_retry_other_errors():
    calls = []

    async def fails():
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await with_retry(fails, retry_on=(DatabaseError,))
    assert len(calls) == 1


async def test_with_retry_caps_delay():
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    async def broken():
        raise DatabaseError("down", "select")

    with pytest.raises(DatabaseError):
        await with_retry(
            broken, max_attempts=5, initial_delay=10, max_delay=25, sleep=fake_sleep,
        )
    assert delays == [10, 20, 25, 25]


@pytest.mark.parametrize("attempts", [0, -1])
async def test_with_retry_rejects_non_positive_attempts(attempts):
    calls = []

    async def never_called():
        calls.append(1)

    with pytest.raises(ValueError, match="max_attempts"):
        await with_retry(never_called, max_attempts=attempts)
    assert calls == []
