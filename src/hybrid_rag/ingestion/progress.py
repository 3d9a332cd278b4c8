"""Progress events and the best-effort channel that carries them.

An ingestion task is the single producer and the HTTP streaming response is
the single consumer.  Delivery is best-effort: when the bounded queue is full
(slow or disconnected client) the event is dropped and the producer carries
on.  The producer is never blocked or cancelled by the consumer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

DONE_SENTINEL = "DONE"


class ProgressKind(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class ProgressEvent:
    """One status line emitted while a document is ingested.

    Attributes
    ----------
    kind:
        Severity / role of the event.
    message:
        Human-readable description.
    step:
        1-based chunk position the event refers to, if any.
    total:
        Number of chunks in the document, if known.
    """

    kind: ProgressKind
    message: str = ""
    step: int | None = None
    total: int | None = None

    @property
    def position(self) -> str:
        """``"i/N"`` reference, empty when the event is not chunk-specific."""
        if self.step is None or self.total is None:
            return ""
        return f"{self.step}/{self.total}"

    def render(self) -> str:
        """Single-line representation written to the progress stream.

        Whitespace runs in the message (including newlines from provider or
        driver errors) collapse to one space, so each event is exactly one
        line.
        """
        if self.kind is ProgressKind.DONE:
            return DONE_SENTINEL
        message = " ".join(self.message.split())
        text = f"[{self.position}] {message}" if self.position else message
        if self.kind is ProgressKind.WARNING:
            return f"WARNING: {text}"
        if self.kind is ProgressKind.ERROR:
            return f"ERROR: {text}"
        return text

    def __str__(self) -> str:
        return self.render()

    # -- constructors -------------------------------------------------------

    @classmethod
    def info(cls, message: str, step: int | None = None, total: int | None = None) -> ProgressEvent:
        return cls(ProgressKind.INFO, message, step, total)

    @classmethod
    def warning(cls, message: str, step: int | None = None, total: int | None = None) -> ProgressEvent:
        return cls(ProgressKind.WARNING, message, step, total)

    @classmethod
    def error(cls, message: str) -> ProgressEvent:
        return cls(ProgressKind.ERROR, message)

    @classmethod
    def done(cls) -> ProgressEvent:
        return cls(ProgressKind.DONE)


_EOF = object()


class ProgressChannel:
    """Bounded single-producer / single-consumer queue of progress events.

    Parameters
    ----------
    maxsize:
        Queue capacity.  Events published while the queue is full are dropped.
    """

    def __init__(self, maxsize: int = 32) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProgressEvent) -> bool:
        """Enqueue *event* without waiting; return ``False`` if it was dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug("Progress queue full, dropping event: %s", event)
            return False
        return True

    def close(self) -> None:
        """Mark the stream finished; the consumer stops once the queue drains."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_EOF)
        except asyncio.QueueFull:
            # The consumer checks ``closed`` after draining.
            pass

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events in publication order until the channel is closed."""
        while True:
            if self._closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is _EOF:
                return
            yield item
