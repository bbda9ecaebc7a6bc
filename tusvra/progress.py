"""Upload progress reporting.

The upload engine publishes a ProgressEvent after every acknowledged chunk.
Events go through a ProgressChannel, a single-slot queue with one producer
(the upload worker) and one consumer (a background thread started by
ProgressReporter) which prints one timestamped line per event.

The slot holds at most one unread event. Publishing into a full slot
replaces the unread event, so the uploader never waits on the console and
a fast upload may skip intermediate percentages. Events that are printed
keep the order in which they were published.

Example:
    >>> from tusvra.progress import ProgressChannel, ProgressEvent, ProgressReporter
    >>> channel = ProgressChannel()
    >>> with ProgressReporter(channel):
    ...     channel.publish(ProgressEvent.at(512, 1024))
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
import queue
import threading

from tusvra.logging import Logger, get_global_logger


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot of a transfer after one acknowledged chunk."""

    offset: int
    size: int
    percentage: int

    @classmethod
    def at(cls, offset: int, size: int) -> ProgressEvent:
        pct = 100 if size <= 0 else int(offset * 100 // size)
        return cls(offset=offset, size=size, percentage=pct)

    def describe(self) -> str:
        return (
            f"Completed {self.percentage}% {self.offset} Bytes of {self.size} Bytes"
        )


_CLOSED = object()


class ProgressChannel:
    """Single-slot, latest-wins event queue with an explicit close."""

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProgressEvent) -> None:
        """Offer an event without blocking, replacing an unread one."""
        if self._closed:
            raise RuntimeError("publish on a closed progress channel")
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def close(self) -> None:
        """Signal the consumer to stop once the pending event is read."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


class ProgressReporter:
    """Background consumer draining a ProgressChannel.

    Use as a context manager: the consumer thread starts on enter; on exit
    the channel is closed and the thread joined, whether the upload phase
    succeeded or raised.
    """

    def __init__(
        self,
        channel: ProgressChannel,
        sink: Callable[[ProgressEvent], None] | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.channel = channel
        self._logger = logger if logger is not None else get_global_logger()
        self._sink = sink if sink is not None else self._print
        self._thread = threading.Thread(
            target=self._consume, name="tus-progress", daemon=True
        )

    def _print(self, event: ProgressEvent) -> None:
        self._logger.info(event.describe())

    def _consume(self) -> None:
        # Keep draining after a sink failure so close() never blocks.
        for event in self.channel:
            try:
                self._sink(event)
            except Exception as err:
                self._logger.warning(f"Progress reporting failed: {err}")

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self.channel.close()
        self._thread.join()

    def __enter__(self) -> ProgressReporter:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
