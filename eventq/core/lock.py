"""
CountingLock — an asyncio counting semaphore with bounded-wait acquisition.

    lock = CountingLock(max_holders=1)
    if await lock.acquire(timeout=timedelta(milliseconds=20)):
        try:
            ...
        finally:
            lock.release()

Semantics
---------
- acquire() never suspends while count < max_holders.
- Otherwise the caller joins a FIFO of waiters. Without a timeout it waits
  until a release() reaches it. With a timeout, whichever comes first wins:
  a release() resolves the waiter with True, or the timer removes it and
  resolves it with False. A waiter is settled exactly once.
- release() hands the slot straight to the earliest pending waiter; count
  only drops when nobody is waiting. count is therefore always the number
  of current holders and never exceeds max_holders.

Single event loop only. Not safe across threads or processes.
"""
from __future__ import annotations

import asyncio
import collections
from datetime import timedelta
from types import TracebackType

from eventq.domain.errors import ConfigurationError


class CountingLock:
    """
    Parameters
    ----------
    max_holders : number of concurrent holders allowed (default 1)
    """

    def __init__(self, max_holders: int = 1) -> None:
        if not isinstance(max_holders, int) or max_holders < 1:
            raise ConfigurationError(
                f"max_holders must be a positive int, got {max_holders!r}"
            )
        self._max = max_holders
        self._count = 0
        self._waiters: collections.deque[asyncio.Future[bool]] = collections.deque()

    def __repr__(self) -> str:
        return (
            f"<CountingLock count={self._count}/{self._max} "
            f"waiting={self.waiting}>"
        )

    @property
    def count(self) -> int:
        """Current number of holders."""
        return self._count

    @property
    def max_holders(self) -> int:
        return self._max

    @property
    def waiting(self) -> int:
        """Number of acquirers still pending."""
        return sum(1 for w in self._waiters if not w.done())

    def locked(self) -> bool:
        """True if acquire() would have to wait."""
        return self._count >= self._max

    async def acquire(self, timeout: timedelta | None = None) -> bool:
        """
        Take a slot. Returns True once held, False if `timeout` elapsed first.

        timeout=None waits indefinitely; a zero or negative timeout only
        succeeds if a slot is free right now.
        """
        if self._count < self._max:
            self._count += 1
            return True

        if timeout is not None and timeout <= timedelta(0):
            return False

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[bool] = loop.create_future()
        self._waiters.append(waiter)

        timer: asyncio.TimerHandle | None = None
        if timeout is not None:
            timer = loop.call_later(
                timeout.total_seconds(), self._expire, waiter
            )

        try:
            return await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled() and waiter.result():
                # Slot was handed over but the caller never saw it.
                self.release()
            else:
                self._discard(waiter)
            raise
        finally:
            if timer is not None:
                timer.cancel()

    def release(self) -> None:
        """
        Give up a slot. The earliest pending waiter inherits it.

        Raises ValueError if called more often than acquire() succeeded.
        """
        if self._count <= 0:
            raise ValueError("CountingLock released too many times")
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(True)
                return
        self._count -= 1

    async def __aenter__(self) -> "CountingLock":
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _expire(self, waiter: asyncio.Future[bool]) -> None:
        """Timer callback — time out `waiter` unless it was already settled."""
        if waiter.done():
            return
        self._discard(waiter)
        waiter.set_result(False)

    def _discard(self, waiter: asyncio.Future[bool]) -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass
