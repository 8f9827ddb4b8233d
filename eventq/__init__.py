"""
eventq — durable, ordered event delivery on top of any key-value store.

Application events are written to a persistent FIFO queue and delivered, in
order, to a remote endpoint. Queued items survive process restarts; failed
deliveries are re-enqueued and retried on the next drain.

The queue state is one tracking entry (ordered ids) plus one entry per item,
so any store with get/set/remove of string values can back it: browser-like
local storage, files, S3, GCS, or a plain dict. Queue mutations are
serialized by an in-process counting lock with a bounded wait; on lock
contention a push is dropped (and logged) rather than blocking the caller.

Quick start
-----------
    import asyncio
    from eventq import DrainLoop, DurableQueue, Endpoint, HttpTransport
    from eventq.adapters.storage.filesystem import LocalFileSystemStorage

    async def main():
        queue = DurableQueue("app-events", LocalFileSystemStorage("./events"))
        transport = HttpTransport(Endpoint(uri="https://logs.example.com/ingest"))

        async with DrainLoop(queue, transport) as loop:
            await loop.submit({"op": "login", "user": 12345})

    asyncio.run(main())

Storage adapters
----------------
Built-in adapters (no extra deps):
  - InMemoryStorage           — for tests and examples (non-durable)
  - LocalFileSystemStorage    — one file per key, atomic replace

Optional adapters (install extras):
  - S3Storage        (pip install "eventq[s3]")
  - GCSStorage       (pip install "eventq[gcs]")

Custom adapters only need to implement the three-method KeyValueStoragePort:
  async def get_item(key) -> str | None
  async def set_item(key, value) -> None
  async def remove_item(key) -> None

Architecture
------------
Follows the Ports & Adapters pattern:
  domain/   — value types (TrackingList, Endpoint) and errors
  ports/    — Protocol interfaces (KeyValueStoragePort, DeliveryPort)
  core/     — business logic (CountingLock, DurableQueue, DrainLoop, EventRecorder)
  adapters/ — concrete storage and transport implementations
"""
from __future__ import annotations

from eventq.adapters.storage.filesystem import LocalFileSystemStorage
from eventq.adapters.storage.memory import InMemoryStorage
from eventq.adapters.transport.http import HttpTransport
from eventq.config import Settings
from eventq.core.capture import EventRecorder, create_event_recorder
from eventq.core.drain import DrainLoop
from eventq.core.lock import CountingLock
from eventq.core.queue import DurableQueue
from eventq.domain.errors import (
    ConfigurationError,
    DeliveryError,
    EventQError,
    LockTimeoutError,
    SerializationError,
    StorageError,
)
from eventq.domain.models import Endpoint, TrackingList
from eventq.log import configure_logging, get_logger
from eventq.ports.storage import KeyValueStoragePort
from eventq.ports.transport import DeliveryPort

__all__ = [
    # Domain models
    "Endpoint",
    "TrackingList",
    # Errors
    "EventQError",
    "ConfigurationError",
    "DeliveryError",
    "LockTimeoutError",
    "SerializationError",
    "StorageError",
    # Ports (for typing custom adapters)
    "KeyValueStoragePort",
    "DeliveryPort",
    # Core
    "CountingLock",
    "DurableQueue",
    "DrainLoop",
    "EventRecorder",
    "create_event_recorder",
    # Built-in adapters
    "InMemoryStorage",
    "LocalFileSystemStorage",
    "HttpTransport",
    # Ambient
    "Settings",
    "configure_logging",
    "get_logger",
]
