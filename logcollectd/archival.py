"""Archival sweep: xz-compress hour buckets older than the retention threshold."""

import logging
import lzma
import os
import shutil
import threading
import time

from logcollectd.metrics import Metrics
from logcollectd.rotation import parse_bucket_filename

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".xz"


def compress_bucket(path: str, preset: int = 1) -> str:
    """Xz-compress a bucket file in place. Returns the .xz path.

    The original is removed only once the artifact has been written and
    closed; on failure the partial artifact is removed and the error raised.
    """
    xz_path = path + ARCHIVE_SUFFIX
    try:
        with open(path, "rb") as f_in, lzma.open(xz_path, "wb", preset=preset) as f_out:
            shutil.copyfileobj(f_in, f_out)
    except (OSError, lzma.LZMAError):
        if os.path.exists(xz_path):
            os.remove(xz_path)
        raise
    os.remove(path)
    return xz_path


class ArchivalSweep(threading.Thread):
    """Periodically compresses closed buckets in the storage directory.

    ``active_bucket`` is a callable returning the filename of the bucket
    currently open for writing (or None); that bucket is always skipped.
    """

    def __init__(self, storage_dir: str, retention_seconds: int, active_bucket=None,
                 interval_sec: float = 3600, preset: int = 1,
                 metrics: Metrics | None = None, time_func=None):
        super().__init__(name="archival-sweep", daemon=True)
        self._storage_dir = storage_dir
        self._retention = retention_seconds
        self._active_bucket = active_bucket or (lambda: None)
        self._interval = interval_sec
        self._preset = preset
        self._metrics = metrics or Metrics()
        self._time_func = time_func or time.time
        self._stop_event = threading.Event()

    def sweep_once(self, now: float | None = None) -> list[str]:
        """Run one pass. Returns the paths of the artifacts created."""
        now = self._time_func() if now is None else now
        try:
            names = sorted(os.listdir(self._storage_dir))
        except OSError as exc:
            logger.error("Cannot list %s: %s", self._storage_dir, exc)
            return []

        archived = []
        for name in names:
            if self._stop_event.is_set():
                logger.info("Archival sweep interrupted by shutdown")
                break
            bucket_time = parse_bucket_filename(name)
            if bucket_time is None:
                continue
            if name == self._active_bucket():
                continue
            age = now - bucket_time.timestamp()
            if age < self._retention:
                continue

            path = os.path.join(self._storage_dir, name)
            try:
                xz_path = compress_bucket(path, self._preset)
            except (OSError, lzma.LZMAError) as exc:
                logger.error("Failed to compress %s: %s", path, exc)
                continue
            self._metrics.record_archived()
            logger.info("Compressed %s", xz_path)
            archived.append(xz_path)

        return archived

    def run(self):
        logger.info(
            "Archival sweep started (every %ss, retention %ds)", self._interval, self._retention,
        )
        while not self._stop_event.is_set():
            self.sweep_once()
            self._stop_event.wait(timeout=self._interval)

    def stop(self):
        self._stop_event.set()
