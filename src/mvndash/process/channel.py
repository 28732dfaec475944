"""Event channel — decouples process workers from session state.

A worker thread owns the producing end and pushes immutable events; the
render thread owns the consuming end and drains it once per tick. Nothing
else crosses between the two.
"""

from __future__ import annotations

import enum
import queue
from dataclasses import dataclass


class ProcessEventType(enum.Enum):
    STARTED = "started"
    LINE = "line"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProcessEvent:
    """An event emitted by a process worker."""

    type: ProcessEventType
    text: str = ""
    pid: int | None = None
    code: int | None = None
    message: str = ""

    @classmethod
    def started(cls, pid: int) -> ProcessEvent:
        return cls(type=ProcessEventType.STARTED, pid=pid)

    @classmethod
    def line(cls, text: str) -> ProcessEvent:
        return cls(type=ProcessEventType.LINE, text=text)

    @classmethod
    def completed(cls, code: int) -> ProcessEvent:
        return cls(type=ProcessEventType.COMPLETED, code=code)

    @classmethod
    def error(cls, message: str) -> ProcessEvent:
        return cls(type=ProcessEventType.ERROR, message=message)

    @property
    def is_terminal(self) -> bool:
        return self.type in (ProcessEventType.COMPLETED, ProcessEventType.ERROR)


class EventChannel:
    """Single-producer, single-consumer queue of process events.

    After the terminal event has been sent the channel closes itself and
    silently drops anything sent later, so consumers never observe a line
    after the terminal event.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[ProcessEvent] = queue.SimpleQueue()
        self._closed = False

    def send(self, event: ProcessEvent) -> None:
        if self._closed:
            return
        self._queue.put(event)
        if event.is_terminal:
            self._closed = True

    def drain(self) -> list[ProcessEvent]:
        """Return every event currently available, without blocking."""
        events: list[ProcessEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def get(self, timeout: float | None = None) -> ProcessEvent | None:
        """Block for the next event. Returns None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    @property
    def closed(self) -> bool:
        return self._closed

    def empty(self) -> bool:
        return self._queue.empty()
