import asyncio
import time

import pytest

from pipelines.concurrency import RateLimiter, fan_out, soft_fail


async def _boom():
    raise RuntimeError("boom")


async def _value():
    return 42


@pytest.mark.asyncio
async def test_soft_fail_returns_value_on_success():
    assert await soft_fail(_value(), default=None) == 42


@pytest.mark.asyncio
async def test_soft_fail_returns_default_and_reports_failure():
    failures = []
    result = await soft_fail(_boom(), default=[], label="test", on_failure=failures.append)
    assert result == []
    assert len(failures) == 1
    assert isinstance(failures[0], RuntimeError)


@pytest.mark.asyncio
async def test_soft_fail_treats_timeout_as_failure():
    async def slow():
        await asyncio.sleep(1)

    result = await soft_fail(asyncio.wait_for(slow(), timeout=0.01), default="fallback")
    assert result == "fallback"


@pytest.mark.asyncio
async def test_fan_out_respects_concurrency_and_order():
    in_flight = 0
    peak = 0

    async def worker(n):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01 * (5 - n % 5))
        in_flight -= 1
        return n * 2

    results = await fan_out(range(12), worker, concurrency=3)
    assert results == [n * 2 for n in range(12)]
    assert peak <= 3


@pytest.mark.asyncio
async def test_fan_out_empty_input():
    async def worker(n):
        return n

    assert await fan_out([], worker) == []


@pytest.mark.asyncio
async def test_rate_limiter_spaces_acquisitions():
    limiter = RateLimiter(0.05)
    start = time.monotonic()
    for _ in range(3):
        await limiter.wait()
    assert time.monotonic() - start >= 0.09


@pytest.mark.asyncio
async def test_rate_limiter_zero_interval_does_not_sleep():
    limiter = RateLimiter(0)
    start = time.monotonic()
    for _ in range(50):
        await limiter.wait()
    assert time.monotonic() - start < 0.5
