"""LogRecord: one received datagram stamped with receipt time and sender."""

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class LogRecord:
    received_at: int   # unix seconds
    source_host: str   # dotted-quad IPv4
    message: str


def create_record(data: bytes, addr: tuple, now: float | None = None) -> LogRecord:
    """Build a LogRecord from a raw datagram and the (host, port) it came from."""
    received_at = int(now if now is not None else time.time())
    return LogRecord(
        received_at=received_at,
        source_host=addr[0],
        message=data.decode("utf-8", errors="replace"),
    )
