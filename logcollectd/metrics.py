"""Thread-safe counters for the collector pipeline."""

import threading
import time


class Metrics:
    def __init__(self):
        self._lock = threading.Lock()
        self._received = 0
        self._dropped = 0
        self._persisted = 0
        self._insert_failures = 0
        self._archived = 0
        self._start_time = time.monotonic()

    def record_received(self):
        with self._lock:
            self._received += 1

    def record_dropped(self):
        with self._lock:
            self._dropped += 1

    def record_persisted(self):
        with self._lock:
            self._persisted += 1

    def record_insert_failure(self):
        with self._lock:
            self._insert_failures += 1

    def record_archived(self):
        with self._lock:
            self._archived += 1

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all counters."""
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            received = self._received
            snap = {
                "received": received,
                "dropped": self._dropped,
                "persisted": self._persisted,
                "insert_failures": self._insert_failures,
                "archived": self._archived,
            }

        snap["elapsed_seconds"] = round(elapsed, 2)
        snap["received_per_second"] = round(received / elapsed, 2) if elapsed > 0 else 0.0
        return snap
