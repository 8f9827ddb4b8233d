"""
DeliveryPort — how the drain loop hands an item to the outside world.

deliver(item, context) returns True when the endpoint accepted the item.
Returning False, or raising, counts as a failed attempt: the drain loop
re-enqueues the item at the tail of the queue.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DeliveryPort(Protocol):
    """Structural Protocol — any object with an async deliver(item, context)."""

    async def deliver(self, item: Any, context: Any) -> bool: ...
