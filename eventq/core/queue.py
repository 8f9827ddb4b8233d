"""
DurableQueue — a persistent FIFO queue on top of a key-value store.

Storage layout (under a caller-chosen name)
-------------------------------------------
  "<name>--queue"  → "<id1>|<id2>|..."   ordered ids, "" or absent when empty
  "<id>"           → JSON payload         one entry per queued item

Every mutation (push, push_all, pop) runs under a CountingLock(max_holders=1)
so no two of them interleave their storage reads and writes. The lock is
acquired with a short bounded wait (20ms by default). When it cannot be
acquired the operation degrades instead of raising:

  push / push_all → item is dropped, a warning is logged, None / [] returned
  pop             → None, exactly as if the queue were empty

peek() and size() read without the lock and may observe a mutation in
progress.

Crash windows
-------------
push writes the item entry before appending its id to the tracking entry;
pop rewrites the tracking entry before removing the item entry. A crash
between the two steps leaves at worst an unreferenced item entry. An item
written but not yet referenced when the process dies is lost.

The lock is in-process only. Two processes sharing one store and one queue
name are not coordinated.
"""
from __future__ import annotations

import dataclasses
import inspect
import uuid
from collections.abc import Sequence
from datetime import timedelta
from typing import Any

from eventq.adapters.storage.memory import InMemoryStorage
from eventq.core import codec
from eventq.core.lock import CountingLock
from eventq.domain.errors import ConfigurationError, LockTimeoutError, SerializationError
from eventq.domain.models import TrackingList
from eventq.log import get_logger
from eventq.ports.storage import KeyValueStoragePort

logger = get_logger(__name__)


async def _resolve(value: Any) -> Any:
    """Await `value` if the store returned an awaitable, else pass it through."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclasses.dataclass
class DurableQueue:
    """
    Parameters
    ----------
    name         : namespace for every key this queue writes (non-empty)
    storage      : any KeyValueStoragePort; when omitted the queue gets its
                   own InMemoryStorage and nothing survives a restart
    lock_timeout : bounded wait for the mutation lock (default 20ms)
    delimiter    : single reserved character separating tracked ids
    """

    name: str
    storage: KeyValueStoragePort | None = None
    lock_timeout: timedelta = timedelta(milliseconds=20)
    delimiter: str = "|"

    _lock: CountingLock = dataclasses.field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("queue name (prefix) must be a non-empty string")
        if (
            not isinstance(self.delimiter, str)
            or len(self.delimiter) != 1
            or self.delimiter.isalnum()
            or self.delimiter == "-"
        ):
            raise ConfigurationError(
                f"delimiter must be one non-alphanumeric character other than '-', "
                f"got {self.delimiter!r}"
            )
        if self.delimiter in self.name:
            raise ConfigurationError(
                f"queue name {self.name!r} must not contain the delimiter {self.delimiter!r}"
            )
        if self.storage is None:
            logger.warning(
                "No storage backend given; queued items will not survive a restart",
                queue=self.name,
            )
            self.storage = InMemoryStorage()
        elif not isinstance(self.storage, KeyValueStoragePort):
            raise ConfigurationError(
                "storage backend must provide get_item, set_item and remove_item"
            )
        self._lock = CountingLock(max_holders=1)

    @property
    def tracking_key(self) -> str:
        """Store key holding the ordered id list."""
        return f"{self.name}--queue"

    # ------------------------------------------------------------------ #
    # Write operations                                                     #
    # ------------------------------------------------------------------ #

    async def push(self, item: Any) -> str | None:
        """
        Append one item. Returns its id, or None if it was dropped because
        the lock could not be acquired in time.

        Raises SerializationError if `item` cannot be encoded.
        """
        ids = await self._append([item])
        return ids[0] if ids else None

    async def push_all(self, items: Sequence[Any]) -> list[str]:
        """
        Append a batch. All ids land in the tracking entry in one rewrite,
        so the batch stays contiguous and in order. Returns the ids, or []
        if the batch was dropped on lock timeout.
        """
        if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
            raise TypeError(f"push_all expects a sequence, got {type(items).__name__}")
        if not items:
            raise ValueError("push_all requires at least one item")
        return await self._append(items)

    async def pop(self) -> Any | None:
        """
        Remove and return the head item. None means the queue is empty or
        the lock could not be acquired in time.
        """
        try:
            await self._acquire()
        except LockTimeoutError as exc:
            logger.warning("Pop skipped", queue=self.name, reason=str(exc))
            return None
        try:
            tracking = await self._read_tracking()
            while not tracking.is_empty:
                item_id = tracking.ids[0]
                tracking = tracking.without_first()
                raw = await _resolve(self.storage.get_item(item_id))
                await self._write_tracking(tracking)
                await _resolve(self.storage.remove_item(item_id))
                if raw is None:
                    logger.warning(
                        "Dropped reference to missing item", queue=self.name, item_id=item_id
                    )
                    continue
                try:
                    return codec.decode_payload(raw)
                except SerializationError as exc:
                    logger.warning(
                        "Dropped undecodable item",
                        queue=self.name,
                        item_id=item_id,
                        error=str(exc),
                    )
            return None
        finally:
            self._lock.release()

    async def clear(self) -> None:
        """Not supported; queued items must be drained with pop()."""
        raise NotImplementedError("DurableQueue does not support clear()")

    # ------------------------------------------------------------------ #
    # Read operations (no lock)                                           #
    # ------------------------------------------------------------------ #

    async def peek(self) -> Any | None:
        """
        Return the head item without removing it, or None if empty.

        Does not take the lock, so a concurrent pop may remove the item
        between the two reads; in that case None is returned. An undecodable
        head entry is logged and also reads as None; the next pop() drops it.
        """
        tracking = await self._read_tracking()
        if tracking.first is None:
            return None
        raw = await _resolve(self.storage.get_item(tracking.first))
        if raw is None:
            return None
        try:
            return codec.decode_payload(raw)
        except SerializationError as exc:
            logger.warning(
                "Head item is undecodable",
                queue=self.name,
                item_id=tracking.first,
                error=str(exc),
            )
            return None

    async def size(self) -> int:
        """Number of tracked ids. Lock-free snapshot."""
        return len((await self._read_tracking()).ids)

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    async def _append(self, items: Sequence[Any]) -> list[str]:
        # Encode first so a bad payload never leaves partial state behind.
        encoded = [(self._new_id(), codec.encode_payload(item)) for item in items]
        try:
            await self._acquire()
        except LockTimeoutError as exc:
            logger.warning(
                "Push dropped",
                queue=self.name,
                items=len(encoded),
                reason=str(exc),
            )
            return []
        try:
            for item_id, payload in encoded:
                await _resolve(self.storage.set_item(item_id, payload))
            new_ids = [item_id for item_id, _ in encoded]
            tracking = await self._read_tracking()
            await self._write_tracking(tracking.with_appended(new_ids))
            return new_ids
        finally:
            self._lock.release()

    async def _acquire(self) -> None:
        if not await self._lock.acquire(timeout=self.lock_timeout):
            raise LockTimeoutError(self.lock_timeout)

    async def _read_tracking(self) -> TrackingList:
        raw = await _resolve(self.storage.get_item(self.tracking_key))
        return codec.decode_tracking(raw, self.delimiter)

    async def _write_tracking(self, tracking: TrackingList) -> None:
        await _resolve(
            self.storage.set_item(
                self.tracking_key, codec.encode_tracking(tracking, self.delimiter)
            )
        )

    def _new_id(self) -> str:
        return f"{self.name}--{uuid.uuid4().hex}"
