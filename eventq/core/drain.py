"""
DrainLoop — pop items from a DurableQueue and hand them to a transport.

    queue = DurableQueue("events", storage)
    transport = HttpTransport(Endpoint(uri="https://logs.example.com/ingest"))

    async with DrainLoop(queue, transport, interval=timedelta(seconds=30)) as loop:
        await loop.submit({"op": "login", "user": 12345})

Protocol
--------
  submit(item) → queue.push(item) → trigger() → drain()

  drain():
    1. pop(); stop when it returns None
    2. deliver(item, context)
    3. accepted → go to 1
    4. rejected or raised → push(item) again and stop

A failed item goes back to the TAIL of the queue: everything enqueued after
it gets a delivery attempt first. Nothing retries immediately; the next
submit() (or the periodic drain, when `interval` is set) picks it up.

Each trigger() starts an independent task. Drains are not serialized with
each other; only the individual pop()/push() calls are. Two drains never
receive the same popped item, but they may interleave arbitrarily.
"""
from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Sequence
from datetime import timedelta
from types import TracebackType
from typing import Any

from eventq.core.queue import DurableQueue
from eventq.log import get_logger
from eventq.ports.transport import DeliveryPort

logger = get_logger(__name__)


@dataclasses.dataclass
class DrainLoop:
    """
    Parameters
    ----------
    queue     : the DurableQueue to drain
    transport : any DeliveryPort (e.g. HttpTransport)
    context   : default context passed to every deliver() call; a
                zero-argument callable is called once per delivery
    interval  : when set, drain periodically while used as a context manager
    """

    queue: DurableQueue
    transport: DeliveryPort
    context: Any = None
    interval: timedelta | None = None

    _tasks: set[asyncio.Task[int]] = dataclasses.field(
        default_factory=set, init=False, repr=False
    )
    _periodic: asyncio.Task[None] | None = dataclasses.field(
        default=None, init=False, repr=False
    )

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> "DrainLoop":
        if self.interval is not None:
            self._periodic = asyncio.create_task(
                self._run_periodic(self.interval), name=f"eventq-drain-{self.queue.name}"
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._periodic is not None:
            self._periodic.cancel()
            try:
                await self._periodic
            except asyncio.CancelledError:
                pass
            self._periodic = None
        await self.wait()

    # ------------------------------------------------------------------ #
    # Producer side                                                        #
    # ------------------------------------------------------------------ #

    async def submit(self, item: Any, context: Any = None) -> str | None:
        """Enqueue `item` and, if it was accepted, start a drain."""
        item_id = await self.queue.push(item)
        if item_id is not None:
            self.trigger(context)
        return item_id

    async def submit_all(self, items: Sequence[Any], context: Any = None) -> list[str]:
        """Enqueue a batch and, if it was accepted, start a drain."""
        ids = await self.queue.push_all(items)
        if ids:
            self.trigger(context)
        return ids

    def trigger(self, context: Any = None) -> asyncio.Task[int]:
        """Start an independent drain task and return it."""
        task = asyncio.create_task(
            self.drain(context), name=f"eventq-drain-{self.queue.name}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._forget)
        return task

    async def wait(self) -> None:
        """Wait until every drain started by trigger() has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Consumer side                                                        #
    # ------------------------------------------------------------------ #

    async def drain(self, context: Any = None) -> int:
        """
        Deliver items until the queue is empty or one delivery fails.

        Returns the number of items delivered by this call.
        """
        ctx = self.context if context is None else context
        delivered = 0
        while True:
            item = await self.queue.pop()
            if item is None:
                break
            if await self._attempt(item, ctx() if callable(ctx) else ctx):
                delivered += 1
                continue
            if await self.queue.push(item) is None:
                logger.error("Failed item lost on re-enqueue", queue=self.queue.name)
            else:
                logger.warning("Delivery failed; item re-enqueued", queue=self.queue.name)
            break
        logger.debug("Drain finished", queue=self.queue.name, delivered=delivered)
        return delivered

    async def _attempt(self, item: Any, context: Any) -> bool:
        try:
            return bool(await self.transport.deliver(item, context))
        except Exception as exc:
            logger.warning(
                "Delivery raised",
                queue=self.queue.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _forget(self, task: asyncio.Task[int]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            exc = task.exception()
            logger.error(
                "Drain aborted",
                queue=self.queue.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _run_periodic(self, interval: timedelta) -> None:
        while True:
            await asyncio.sleep(interval.total_seconds())
            try:
                await self.drain()
            except Exception as exc:
                logger.error(
                    "Periodic drain failed",
                    queue=self.queue.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
