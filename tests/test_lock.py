import asyncio
from datetime import timedelta

import pytest

from eventq.core.lock import CountingLock
from eventq.domain.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_default_is_single_holder() -> None:
    lock = CountingLock()
    assert lock.max_holders == 1
    assert lock.count == 0
    assert not lock.locked()


@pytest.mark.parametrize("bad", [0, -1, 1.5, "1"])
def test_invalid_max_holders_raises(bad: object) -> None:
    with pytest.raises(ConfigurationError):
        CountingLock(bad)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Fast path
# ---------------------------------------------------------------------------


async def test_acquire_free_slot_returns_true() -> None:
    lock = CountingLock(2)
    assert await lock.acquire() is True
    assert lock.count == 1
    assert not lock.locked()


async def test_acquire_until_saturated() -> None:
    lock = CountingLock(2)
    await lock.acquire()
    await lock.acquire()
    assert lock.count == 2
    assert lock.locked()


async def test_one_slot_admits_one_of_two() -> None:
    lock = CountingLock(1)
    granted: list[int] = []

    async def take(n: int) -> None:
        await lock.acquire()
        granted.append(n)

    tasks = [asyncio.create_task(take(i)) for i in range(2)]
    await asyncio.sleep(0.01)
    assert granted == [0]
    assert lock.waiting == 1
    for t in tasks:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# Fairness and hand-off
# ---------------------------------------------------------------------------


async def test_k_plus_m_acquirers_grant_k_then_fifo() -> None:
    k, m = 3, 4
    lock = CountingLock(k)
    granted: list[int] = []

    async def take(n: int) -> None:
        await lock.acquire()
        granted.append(n)

    tasks = [asyncio.create_task(take(i)) for i in range(k + m)]
    await asyncio.sleep(0.01)
    assert granted == [0, 1, 2]
    assert lock.waiting == m

    for expected in range(k, k + m):
        lock.release()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert granted[-1] == expected

    await asyncio.gather(*tasks)
    assert granted == list(range(k + m))
    assert lock.waiting == 0


async def test_release_hands_slot_to_waiter_without_freeing_it() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    waiter = asyncio.create_task(lock.acquire())
    await asyncio.sleep(0)

    lock.release()
    assert await waiter is True
    assert lock.count == 1
    assert lock.locked()


async def test_count_never_exceeds_max_under_contention() -> None:
    lock = CountingLock(2)
    active = 0
    peak = 0

    async def worker() -> None:
        nonlocal active, peak
        async with lock:
            active += 1
            peak = max(peak, active)
            assert lock.count <= lock.max_holders
            await asyncio.sleep(0.001)
            active -= 1

    await asyncio.gather(*(worker() for _ in range(20)))
    assert peak == 2
    assert lock.count == 0


async def test_release_without_waiters_frees_slot() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    lock.release()
    assert lock.count == 0
    assert await lock.acquire() is True


def test_over_release_raises() -> None:
    lock = CountingLock(1)
    with pytest.raises(ValueError):
        lock.release()


# ---------------------------------------------------------------------------
# Bounded wait
# ---------------------------------------------------------------------------


async def test_timeout_on_saturated_lock_returns_false() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    loop = asyncio.get_running_loop()
    start = loop.time()
    result = await lock.acquire(timedelta(milliseconds=30))
    elapsed = loop.time() - start
    assert result is False
    assert elapsed >= 0.03 - 0.005
    assert elapsed < 0.03 + 0.2
    assert lock.waiting == 0
    assert lock.count == 1


async def test_release_before_timeout_wins() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    waiter = asyncio.create_task(lock.acquire(timedelta(milliseconds=200)))
    await asyncio.sleep(0.01)
    lock.release()
    assert await waiter is True
    assert lock.count == 1


async def test_timed_out_waiter_not_resolved_by_later_release() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    assert await lock.acquire(timedelta(milliseconds=5)) is False

    # The slot is freed, not handed to the expired waiter.
    lock.release()
    assert lock.count == 0


async def test_timed_out_waiter_does_not_block_later_waiters() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    short = asyncio.create_task(lock.acquire(timedelta(milliseconds=5)))
    long = asyncio.create_task(lock.acquire())
    await asyncio.sleep(0.03)
    assert short.done() and short.result() is False

    lock.release()
    assert await long is True
    assert lock.count == 1


async def test_zero_timeout_is_non_blocking() -> None:
    lock = CountingLock(1)
    assert await lock.acquire(timedelta(0)) is True
    assert await lock.acquire(timedelta(0)) is False
    assert lock.waiting == 0


async def test_slots_with_timeouts_and_no_release() -> None:
    lock = CountingLock(3)
    results = await asyncio.gather(
        *(lock.acquire(timedelta(milliseconds=2)) for _ in range(5))
    )
    assert results.count(True) == 3
    assert results.count(False) == 2


async def test_slots_with_timeouts_and_release() -> None:
    lock = CountingLock(3)

    async def take_and_release() -> bool:
        ok = await lock.acquire(timedelta(milliseconds=50))
        if ok:
            lock.release()
        return ok

    results = await asyncio.gather(*(take_and_release() for _ in range(5)))
    assert all(results)
    assert lock.count == 0


async def test_holders_outlasting_timeout_starve_waiters() -> None:
    lock = CountingLock(3)

    async def hold() -> bool:
        ok = await lock.acquire(timedelta(milliseconds=10))
        if ok:
            await asyncio.sleep(0.03)
            lock.release()
        return ok

    results = await asyncio.gather(*(hold() for _ in range(5)))
    assert results.count(True) == 3


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


async def test_cancelled_waiter_is_removed() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    waiter = asyncio.create_task(lock.acquire())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert lock.waiting == 0

    lock.release()
    assert lock.count == 0


async def test_cancel_after_handoff_passes_slot_on() -> None:
    lock = CountingLock(1)
    await lock.acquire()
    first = asyncio.create_task(lock.acquire())
    second = asyncio.create_task(lock.acquire())
    await asyncio.sleep(0)

    lock.release()  # hands the slot to `first`
    first.cancel()  # ...which is cancelled before it resumes
    with pytest.raises(asyncio.CancelledError):
        await first

    assert await second is True
    assert lock.count == 1


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


async def test_async_with_acquires_and_releases() -> None:
    lock = CountingLock(1)
    async with lock:
        assert lock.count == 1
    assert lock.count == 0


async def test_async_with_releases_on_error() -> None:
    lock = CountingLock(1)
    with pytest.raises(RuntimeError):
        async with lock:
            raise RuntimeError("boom")
    assert lock.count == 0


def test_repr_shows_state() -> None:
    assert repr(CountingLock(2)) == "<CountingLock count=0/2 waiting=0>"
