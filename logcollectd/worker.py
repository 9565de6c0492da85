"""PersistenceWorker: consumer thread that drains the queue into the active bucket."""

import logging
import sqlite3
import threading

from logcollectd.ingest_queue import IngestQueue
from logcollectd.metrics import Metrics
from logcollectd.models import LogRecord
from logcollectd.rotation import BucketOpenError, RotationPolicy

logger = logging.getLogger(__name__)


class PersistenceWorker(threading.Thread):
    def __init__(self, q: IngestQueue, rotation: RotationPolicy,
                 metrics: Metrics | None = None, pop_timeout_sec: float = 0.5):
        super().__init__(name="persistence-worker", daemon=True)
        self._queue = q
        self._rotation = rotation
        self._pop_timeout = pop_timeout_sec
        self._stop_event = threading.Event()
        self.metrics = metrics or Metrics()

    def _check_rotation(self):
        try:
            self._rotation.check()
        except BucketOpenError as exc:
            logger.error("%s", exc)

    def _persist(self, record: LogRecord):
        try:
            self._rotation.insert(record)
        except sqlite3.Error as exc:
            self.metrics.record_insert_failure()
            logger.error("Insert failed for record from %s: %s", record.source_host, exc)
            return
        self.metrics.record_persisted()

    def run(self):
        logger.info("Persistence worker started")
        while not self._stop_event.is_set():
            self._check_rotation()
            record = self._queue.pop(self._pop_timeout)
            if record is None:
                continue
            # The hour may have turned while pop() was waiting.
            self._check_rotation()
            self._persist(record)

        # Drain whatever the listener queued before it stopped.
        remaining = self._queue.drain()
        if remaining:
            self._check_rotation()
            logger.info("Draining %d queued record(s)", len(remaining))
        for record in remaining:
            self._persist(record)

        self._rotation.close()
        snap = self.metrics.snapshot()
        logger.info(
            "Persistence worker stopped (%d persisted, %d failed)",
            snap["persisted"], snap["insert_failures"],
        )

    def stop(self):
        """Signal the loop to exit; the thread drains the queue and closes the bucket."""
        self._stop_event.set()
