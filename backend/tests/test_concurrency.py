import asyncio
import random

import pytest

from core.concurrency import RetryPolicy, bounded_map, with_retry


# ── bounded_map ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3, 7, 20])
async def test_bounded_map_preserves_input_order(limit):
    rng = random.Random(limit)
    items = list(range(20))
    delays = [rng.uniform(0, 0.01) for _ in items]

    async def worker(item, index):
        await asyncio.sleep(delays[index])
        return (item * 10, index)

    out = await bounded_map(items, limit, worker)
    assert out == [(i * 10, i) for i in items]


@pytest.mark.asyncio
async def test_bounded_map_never_exceeds_limit():
    in_flight = 0
    peak = 0

    async def worker(item, index):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return item

    await bounded_map(range(30), 4, worker)
    assert peak == 4


@pytest.mark.asyncio
async def test_bounded_map_empty_and_degenerate_limit():
    async def worker(item, index):
        return item

    assert await bounded_map([], 6, worker) == []
    assert await bounded_map(["a", "b"], 0, worker) == ["a", "b"]


@pytest.mark.asyncio
async def test_bounded_map_propagates_worker_errors():
    async def worker(item, index):
        if item == 3:
            raise RuntimeError("boom")
        await asyncio.sleep(0.001)
        return item

    with pytest.raises(RuntimeError, match="boom"):
        await bounded_map(range(10), 3, worker)


# ── with_retry ──────────────────────────────────────────────────────────────

class _Flaky:
    def __init__(self, failures, exc=ConnectionError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"fail {self.calls}")
        return "ok"


@pytest.mark.asyncio
async def test_with_retry_backs_off_exponentially():
    slept = []

    async def fake_sleep(delay):
        slept.append(delay)

    op = _Flaky(failures=2)
    policy = RetryPolicy(retries=2, backoff_s=0.8)
    assert await with_retry(op, policy, sleep=fake_sleep) == "ok"
    assert op.calls == 3
    assert slept == pytest.approx([0.8, 1.6])


@pytest.mark.asyncio
async def test_with_retry_raises_last_error_when_exhausted():
    async def no_sleep(delay):
        return None

    op = _Flaky(failures=10)
    with pytest.raises(ConnectionError, match="fail 3"):
        await with_retry(op, RetryPolicy(retries=2, backoff_s=1.0), sleep=no_sleep)
    assert op.calls == 3


@pytest.mark.asyncio
async def test_with_retry_does_not_retry_other_errors():
    op = _Flaky(failures=1, exc=KeyError)
    policy = RetryPolicy(retries=5, backoff_s=0.0, retry_on=(ConnectionError,))
    with pytest.raises(KeyError):
        await with_retry(op, policy)
    assert op.calls == 1


def test_retry_delay_schedule():
    policy = RetryPolicy(retries=3, backoff_s=0.5)
    assert [policy.delay_for(a) for a in range(3)] == [0.5, 1.0, 2.0]
