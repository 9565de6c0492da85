"""Listener: receives raw syslog-style datagrams over UDP."""

import logging
import socket
import threading

from logcollectd.config import Config
from logcollectd.ingest_queue import IngestQueue
from logcollectd.metrics import Metrics
from logcollectd.models import create_record

logger = logging.getLogger(__name__)


class Listener:
    def __init__(self, config: Config, q: IngestQueue, shutdown_event: threading.Event,
                 metrics: Metrics | None = None):
        self._config = config
        self._queue = q
        self._shutdown = shutdown_event
        self._sock = None
        self.server_address = None
        self.metrics = metrics or Metrics()

    def open(self):
        """Create and bind the socket. Raises OSError on failure."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self._config.host, self._config.port))
        except OSError:
            sock.close()
            raise

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, self._config.recv_buffer_bytes)
        except OSError as exc:
            logger.warning("Could not set SO_RCVBUF to %d: %s", self._config.recv_buffer_bytes, exc)

        sock.settimeout(self._config.poll_timeout_sec)
        self._sock = sock
        self.server_address = sock.getsockname()
        actual_rcvbuf = sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)
        logger.info(
            "Listening on %s:%d (SO_RCVBUF=%d bytes)",
            self.server_address[0], self.server_address[1], actual_rcvbuf,
        )

    def start(self):
        """Receive loop. Returns once the shutdown event is set."""
        if self._sock is None:
            self.open()

        sock = self._sock
        while not self._shutdown.is_set():
            try:
                data, addr = sock.recvfrom(self._config.max_datagram_bytes)
            except socket.timeout:
                continue
            except OSError as exc:
                if self._shutdown.is_set():
                    break
                logger.error("recvfrom failed: %s", exc)
                continue

            record = create_record(data, addr)
            self.metrics.record_received()
            if not self._queue.push(record):
                self.metrics.record_dropped()
                continue

            logger.debug("Received %d bytes from %s", len(data), record.source_host)

    def stop(self):
        self._shutdown.set()
        if self._sock:
            self._sock.close()
            self._sock = None
