"""Hour-partitioned SQLite buckets and the policy that switches between them."""

import logging
import os
import sqlite3
import threading
import time
from datetime import datetime

from logcollectd.models import LogRecord

logger = logging.getLogger(__name__)

BUCKET_SUFFIX = ".sqlite3"
KEY_FORMAT = "%Y%m%d%H"
KEY_LENGTH = 10

SCHEMA = (
    "CREATE TABLE IF NOT EXISTS log ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "timestamp INTEGER, "
    "host TEXT, "
    "message TEXT)"
)
INSERT_SQL = "INSERT INTO log (timestamp, host, message) VALUES (?, ?, ?)"


class BucketOpenError(Exception):
    """Raised when a bucket file cannot be opened or its schema created."""


def bucket_key(dt: datetime) -> str:
    """Zero-padded YYYYMMDDHH key for the hour containing *dt*."""
    return dt.strftime(KEY_FORMAT)


def bucket_filename(dt: datetime) -> str:
    return bucket_key(dt) + BUCKET_SUFFIX


def parse_bucket_filename(name: str) -> datetime | None:
    """Return the local start-of-hour a bucket filename stands for.

    Only names of the exact shape ``YYYYMMDDHH.sqlite3`` parse; anything
    else (compressed artifacts, journals, stray files) returns None.
    """
    if len(name) != KEY_LENGTH + len(BUCKET_SUFFIX) or not name.endswith(BUCKET_SUFFIX):
        return None
    key = name[:KEY_LENGTH]
    if not key.isdigit():
        return None
    try:
        return datetime.strptime(key, KEY_FORMAT)
    except ValueError:
        return None


class RotationPolicy:
    """Owns the single bucket open for writing and rolls it over each hour.

    The connection is created by whichever thread runs the first
    ``check()`` and afterwards used only by the persistence worker, so it
    is opened with ``check_same_thread=False`` but never shared.
    """

    def __init__(self, storage_dir: str, time_func=None):
        self._storage_dir = storage_dir
        self._time_func = time_func or time.time
        self._conn: sqlite3.Connection | None = None
        self._active_key: str | None = None
        self._active_path: str | None = None
        # Guards the active-bucket name, which the archival sweep reads.
        self._lock = threading.Lock()

    @property
    def active_key(self) -> str | None:
        with self._lock:
            return self._active_key

    @property
    def active_path(self) -> str | None:
        with self._lock:
            return self._active_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def active_filename(self) -> str | None:
        key = self.active_key
        return key + BUCKET_SUFFIX if key else None

    def check(self) -> bool:
        """Switch buckets if the local hour changed. Returns True on a switch."""
        now = datetime.fromtimestamp(self._time_func())
        key = bucket_key(now)
        current = self._active_key
        if key == current and self._conn is not None:
            return False
        if current is not None and key < current:
            logger.warning(
                "Clock moved back to hour %s, keeping bucket %s open", key, current,
            )
            return False

        path = os.path.join(self._storage_dir, key + BUCKET_SUFFIX)
        self._close_connection()
        self._conn = self._open(path)
        with self._lock:
            self._active_key = key
            self._active_path = path
        logger.info("Writing to bucket %s", path)
        return True

    def insert(self, record: LogRecord):
        """Insert one record into the open bucket. Raises sqlite3.Error on failure."""
        if self._conn is None:
            raise sqlite3.OperationalError("no bucket open for writing")
        self._conn.execute(
            INSERT_SQL, (record.received_at, record.source_host, record.message),
        )

    def close(self):
        self._close_connection()
        with self._lock:
            self._active_key = None
            self._active_path = None

    def _open(self, path: str) -> sqlite3.Connection:
        conn = None
        try:
            conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
            conn.execute(SCHEMA)
        except (sqlite3.Error, OSError) as exc:
            if conn is not None:
                conn.close()
            raise BucketOpenError(f"Can't open bucket {path}: {exc}") from exc
        return conn

    def _close_connection(self):
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error as exc:
                logger.error("Error closing bucket %s: %s", self._active_path, exc)
            self._conn = None
