"""IngestQueue: bounded FIFO hand-off between the listener and the worker."""

import logging
import queue

from logcollectd.models import LogRecord

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100_000


class IngestQueue:
    """Single-producer, single-consumer queue that drops instead of blocking.

    ``push`` never waits for space: when the queue already holds
    ``capacity`` records the new one is discarded. ``pop``
    suspends the consumer on the underlying condition variable for at most
    ``timeout`` seconds, so an idle worker costs no CPU.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._queue.qsize()

    def push(self, record: LogRecord) -> bool:
        """Enqueue a record. Returns False (and drops it) if the queue is full."""
        try:
            self._queue.put_nowait(record)
        except queue.Full:
            logger.warning(
                "Queue is full (%d records), dropping message from %s",
                self._capacity, record.source_host,
            )
            return False
        return True

    def pop(self, timeout: float) -> LogRecord | None:
        """Wait up to *timeout* seconds for the oldest record. None if empty."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[LogRecord]:
        """Remove and return everything currently queued, oldest first."""
        records = []
        while True:
            try:
                records.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return records
