"""
EventRecorder — decide what to log for an application action, then queue it.

For every (action, state) pair:

  1. handlers are called in order until one returns something other than
     None; if all return None the action is not logged
  2. injected_parameters are merged into a dict result; callable values are
     called with `state`
  3. a validator returning falsy rejects the event (logged at ERROR)
  4. the transform, if any, reshapes the event
  5. an empty dict is not logged
  6. the event is submitted to the DrainLoop, which persists it and starts
     a delivery attempt with `state` as the delivery context

create_event_recorder() wires a queue, an HTTP transport, a drain loop and
a recorder from Settings in one call.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from eventq.adapters.transport.http import HttpTransport
from eventq.config import Settings
from eventq.core.drain import DrainLoop
from eventq.core.queue import DurableQueue
from eventq.domain.errors import ConfigurationError
from eventq.domain.models import Endpoint
from eventq.log import get_logger
from eventq.ports.storage import KeyValueStoragePort

logger = get_logger(__name__)

Handler = Callable[[Any, Any], Any]
Validator = Callable[[Any], bool]


@dataclasses.dataclass
class EventRecorder:
    """
    Parameters
    ----------
    drain               : where accepted events are submitted
    handlers            : one handler or a non-empty sequence of handlers;
                          handler(action, state) -> event | None
    injected_parameters : extra fields merged into every dict event
    validator           : validator(event) -> bool, optional
    transform           : transform(event) -> event, optional; applied
                          before queueing, so the stored payload is what
                          gets sent
    """

    drain: DrainLoop
    handlers: Handler | Sequence[Handler]
    injected_parameters: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    validator: Validator | None = None
    transform: Callable[[Any], Any] | None = None

    _handlers: tuple[Handler, ...] = dataclasses.field(init=False, repr=False)

    def __post_init__(self) -> None:
        if callable(self.handlers):
            self._handlers = (self.handlers,)
        elif isinstance(self.handlers, Sequence) and not isinstance(self.handlers, str):
            if not self.handlers:
                raise ConfigurationError("handlers must not be empty")
            for handler in self.handlers:
                if not callable(handler):
                    raise ConfigurationError(
                        f"All handlers must be callable, found handler={handler!r}"
                    )
            self._handlers = tuple(self.handlers)
        else:
            raise ConfigurationError(
                "handlers must be a callable or a sequence of callables"
            )
        if self.validator is not None and not callable(self.validator):
            raise ConfigurationError("validator must be callable")
        if self.transform is not None and not callable(self.transform):
            raise ConfigurationError("transform must be callable")

    def capture(self, action: Any, state: Any) -> Any | None:
        """Run steps 1–5. Returns the event to log, or None to skip."""
        event = None
        for handler in self._handlers:
            event = handler(action, state)
            if event is not None:
                break
        if event is None:
            return None

        if self.injected_parameters and isinstance(event, Mapping):
            injected = {
                key: value(state) if callable(value) else value
                for key, value in self.injected_parameters.items()
            }
            event = {**event, **injected}

        if self.validator is not None and not self.validator(event):
            logger.error("Event did not validate and will not be sent", event_data=event)
            return None

        if self.transform is not None:
            event = self.transform(event)

        if event is None or (isinstance(event, Mapping) and not event):
            return None
        return event

    async def record(self, action: Any, state: Any = None) -> bool:
        """Capture and enqueue. Returns True if an event was queued."""
        event = self.capture(action, state)
        if event is None:
            return False
        return await self.drain.submit(event, context=state) is not None


def create_event_recorder(
    name: str,
    endpoint: str | Endpoint,
    handlers: Handler | Sequence[Handler],
    *,
    storage: KeyValueStoragePort | None = None,
    injected_parameters: Mapping[str, Any] | None = None,
    validator: Validator | None = None,
    settings: Settings | None = None,
) -> EventRecorder:
    """
    Build queue → transport → drain loop → recorder.

    An `Endpoint.transform` is moved to the recorder, so it runs once at
    capture time and a transform that empties the event skips it.

    Use the returned recorder's drain loop as an async context manager so
    the periodic drain (EVENTQ_DRAIN_INTERVAL_SECONDS) runs and in-flight
    deliveries finish on exit:

        recorder = create_event_recorder("app", "https://logs/ingest", handler)
        async with recorder.drain:
            await recorder.record(action, state)
    """
    settings = settings or Settings()
    if isinstance(endpoint, str):
        try:
            endpoint = Endpoint(uri=endpoint, timeout=settings.delivery_timeout)
        except ValueError as exc:
            raise ConfigurationError(f"invalid endpoint: {exc}") from exc

    queue = DurableQueue(
        name,
        storage,
        lock_timeout=settings.lock_timeout,
        delimiter=settings.delimiter,
    )
    # The recorder applies the transform before queueing; the transport
    # must not apply it a second time.
    transform = endpoint.transform
    drain = DrainLoop(
        queue,
        HttpTransport(endpoint.model_copy(update={"transform": None})),
        interval=settings.drain_interval,
    )
    return EventRecorder(
        drain,
        handlers,
        injected_parameters=injected_parameters or {},
        validator=validator,
        transform=transform,
    )
