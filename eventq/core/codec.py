"""
Codec — the string encodings eventq writes to a KeyValueStoragePort.

Two kinds of entries live in the store:

Item entry (key = item id)
--------------------------
The payload as compact JSON, produced by a Pydantic TypeAdapter(Any):

  {"op":"login","user":12345}

Tracking entry (key = "<name>--queue")
--------------------------------------
The ordered item ids joined by a single reserved delimiter (default "|"):

  events--3f2a...|events--9c1d...|events--07be...

An absent or empty tracking entry is an empty queue.
"""
from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError

from eventq.domain.errors import SerializationError
from eventq.domain.models import TrackingList

_PAYLOAD: TypeAdapter[Any] = TypeAdapter(Any)


def encode_payload(item: Any) -> str:
    """
    Serialize a payload to a JSON string.

    None is rejected: a pop() result of None already means "nothing there".
    The same goes for any payload that encodes to JSON null, such as a bare
    float("nan") or float("inf").
    """
    if item is None:
        raise SerializationError("None cannot be queued")
    try:
        encoded = _PAYLOAD.dump_json(item).decode("utf-8")
    except (PydanticSerializationError, ValueError, TypeError, RecursionError) as exc:
        raise SerializationError(
            f"Cannot serialize {type(item).__name__} payload", exc
        ) from exc
    if encoded == "null":
        raise SerializationError(f"{item!r} encodes to null and cannot be queued")
    return encoded


def decode_payload(data: str) -> Any:
    """Parse a JSON string written by encode_payload()."""
    try:
        return _PAYLOAD.validate_json(data)
    except ValueError as exc:
        raise SerializationError("Stored payload is not valid JSON", exc) from exc


def encode_tracking(tracking: TrackingList, delimiter: str = "|") -> str:
    """Join ids with the delimiter. An empty list encodes to ""."""
    return delimiter.join(tracking.ids)


def decode_tracking(data: str | None, delimiter: str = "|") -> TrackingList:
    """Split a tracking entry. None or "" → empty TrackingList."""
    if not data:
        return TrackingList()
    return TrackingList(ids=tuple(i for i in data.split(delimiter) if i))
