import queue
import threading
from typing import Iterator, List, Optional, Union

from signpractice.ml.types import LessonCompleted, RecognitionEvent

Event = Union[RecognitionEvent, LessonCompleted]

_CLOSED = object()


class EventChannel:
    """
    Ordered, single-consumer hand-off of recognizer events to the
    presentation side. Each event is delivered at most once, in the order
    it was published.
    """

    def __init__(self):
        self._queue: "queue.Queue" = queue.Queue()
        self._closed = threading.Event()

    def publish(self, event: Event) -> None:
        if self._closed.is_set():
            return
        self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event, or None on timeout / after close."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            # keep the sentinel visible to later readers
            self._queue.put(_CLOSED)
            return None
        return item

    def drain(self) -> List[Event]:
        out = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                break
            out.append(item)
        return out

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSED)

    def reopen(self) -> None:
        """Accept events again after close(). Undelivered events are kept."""
        if not self._closed.is_set():
            return
        pending = self.drain()
        self._queue = queue.Queue()
        for event in pending:
            self._queue.put(event)
        self._closed.clear()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __iter__(self) -> Iterator[Event]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item
