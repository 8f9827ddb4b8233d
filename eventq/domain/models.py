"""
Domain models for eventq — backed by Pydantic v2.

TrackingList is the in-memory form of the single tracking entry that orders
a queue. Endpoint describes where a transport delivers items. Both models are
frozen; mutations return new instances via model_copy(update=...).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

HeaderValue = str | bool | Callable[[Any], str]


class TrackingList(BaseModel):
    """
    Ordered identifiers of the items currently in a queue.

    ids — authoritative FIFO order; ids[0] is the next item to pop
    """

    model_config = ConfigDict(frozen=True)

    ids: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.ids

    @property
    def first(self) -> str | None:
        """The head identifier, or None when the list is empty."""
        return self.ids[0] if self.ids else None

    def with_appended(self, new_ids: Sequence[str]) -> "TrackingList":
        """Append identifiers at the tail, preserving their order."""
        return self.model_copy(update={"ids": self.ids + tuple(new_ids)})

    def without_first(self) -> "TrackingList":
        """Drop the head identifier. An empty list stays empty."""
        return self.model_copy(update={"ids": self.ids[1:]})


class Endpoint(BaseModel):
    """
    Remote delivery target.

    uri       — http(s) URL items are POSTed to
    headers   — extra headers; values may be str, bool, or a callable of the
                delivery context returning str
    timeout   — per-request timeout
    transform — optional function applied to each item before it is sent
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    uri: str
    headers: dict[str, HeaderValue] = Field(default_factory=dict)
    timeout: timedelta = timedelta(seconds=10)
    transform: Callable[[Any], Any] | None = None

    @field_validator("uri")
    @classmethod
    def _check_uri(cls, v: str) -> str:
        if not v or not v.startswith(("http://", "https://")):
            raise ValueError(f"uri must be an http(s) URL, got {v!r}")
        return v

    def render_headers(self, context: Any) -> dict[str, str]:
        """Resolve header values against `context` into plain strings."""
        rendered = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        for name, value in self.headers.items():
            match value:
                case bool():
                    rendered[name] = str(value).lower()
                case str():
                    rendered[name] = value
                case _:
                    rendered[name] = str(value(context))
        return rendered
