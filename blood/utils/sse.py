"""Server-sent event helpers for the live notification and fulfillment streams."""

from __future__ import annotations

import json
import queue
from typing import Any, Callable, Iterable, Iterator, Optional, Tuple

from django.core.serializers.json import DjangoJSONEncoder
from django.http import StreamingHttpResponse

Event = Tuple[str, Any]


def format_event(event: str, data: Any) -> str:
    payload = json.dumps(data, cls=DjangoJSONEncoder)
    return f"event: {event}\ndata: {payload}\n\n"


class EventStream:
    """Iterator over queued events that always runs ``on_close`` once.

    ``close()`` is what :class:`StreamingHttpResponse` calls when the response
    is finished, so the hook also runs for a stream that was never read.
    """

    def __init__(
        self,
        events: "queue.Queue[Optional[Event]]",
        *,
        heartbeat: float,
        on_close: Callable[[], None],
        initial: Iterable[Event] = (),
    ):
        self.events = events
        self.heartbeat = heartbeat
        self.on_close = on_close
        self.initial = list(initial)
        self.closed = False
        self._iterator = self._generate()

    def _generate(self) -> Iterator[str]:
        try:
            for event, data in self.initial:
                yield format_event(event, data)
            while True:
                try:
                    item = self.events.get(timeout=self.heartbeat)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                if item is None:
                    break
                yield format_event(*item)
        finally:
            self._finish()

    def _finish(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.on_close()

    def __iter__(self) -> "EventStream":
        return self

    def __next__(self) -> str:
        return next(self._iterator)

    def close(self) -> None:
        self._iterator.close()
        self._finish()


def event_stream(
    events: "queue.Queue[Optional[Event]]",
    *,
    heartbeat: float,
    on_close: Callable[[], None],
    initial: Iterable[Event] = (),
) -> EventStream:
    """Yield queued events until a ``None`` sentinel arrives or the client goes away."""

    return EventStream(events, heartbeat=heartbeat, on_close=on_close, initial=initial)


def sse_response(stream: Iterator[str]) -> StreamingHttpResponse:
    response = StreamingHttpResponse(stream, content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
