from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING, Iterator, Optional

from docqa.core.events import QueryEvent

if TYPE_CHECKING:
    from docqa.pipeline.query_pipeline import QueryPipeline

_DONE = object()


class QueryStream:
    """Ordered, finite event stream for one query.

    Iterating starts the query on a worker thread and yields its events until the
    terminal one. A stream can be consumed once; ``cancel()`` stops it at the next
    stage boundary or partial answer and ends it with a QueryError.
    """

    def __init__(self, pipeline: "QueryPipeline", text: str):
        self._pipeline = pipeline
        self._text = text
        self._events: "queue.Queue[object]" = queue.Queue()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __iter__(self) -> Iterator[QueryEvent]:
        if self._thread is not None:
            raise RuntimeError("QueryStream can only be consumed once")
        self._thread = threading.Thread(target=self._run, name="docqa-query", daemon=True)
        self._thread.start()
        return self._drain()

    def _drain(self) -> Iterator[QueryEvent]:
        while True:
            event = self._events.get()
            if event is _DONE:
                break
            yield event
        assert self._thread is not None
        self._thread.join()

    def _run(self) -> None:
        try:
            self._pipeline.ask(self._text, self._events.put, cancelled=self._cancel)
        finally:
            self._events.put(_DONE)

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()
