"""
KeyValueStoragePort — the storage port of eventq.

Any object satisfying this structural Protocol can back a DurableQueue.
No base class or registration is required.

Contract
--------
get_item(key)
  - Returns the stored string, or None if the key does not exist.

set_item(key, value)
  - Unconditional put. Each call is independently atomic; there are no
    multi-key transactions.

remove_item(key)
  - Deletes the key. Removing a key that does not exist is not an error.

The built-in adapters implement all three as coroutines. DurableQueue also
accepts stores whose methods are plain functions (a dict wrapper, a shelve
handle, ...) and only awaits results that are awaitable.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStoragePort(Protocol):
    """
    Minimal string key → string value interface required by DurableQueue.

    Implementing adapters (built-in):
      - InMemoryStorage        — dict-backed, non-durable
      - LocalFileSystemStorage — one file per key, atomic replace
      - S3Storage              — one object per key (aioboto3)
      - GCSStorage             — one blob per key (google-cloud-storage)
    """

    async def get_item(self, key: str) -> str | None:
        """Return the value stored under `key`, or None if absent."""
        ...

    async def set_item(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises
        ------
        StorageError  for any I/O failure
        """
        ...

    async def remove_item(self, key: str) -> None:
        """Delete `key`. A missing key is silently ignored."""
        ...
