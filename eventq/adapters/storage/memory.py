"""
InMemoryStorage — dict-backed key-value store for tests and development.

This is also what a DurableQueue uses when no storage is given. Each
instance owns its own dict: two queues only share state if they are handed
the same InMemoryStorage object.

Zero external dependencies. Nothing survives the process. Safe for multiple
concurrent coroutines in a single event loop; NOT safe across threads.
"""
from __future__ import annotations

import dataclasses


@dataclasses.dataclass
class InMemoryStorage:
    """
    In-process key-value store.

    Parameters
    ----------
    initial_items : optional pre-populated entries (useful for test setup)
    """

    initial_items: dict[str, str] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        self._items: dict[str, str] = dict(self.initial_items)

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of every stored entry."""
        return dict(self._items)
