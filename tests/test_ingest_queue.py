"""Tests for the bounded ingest queue."""

import threading
import time

import pytest

from logcollectd.ingest_queue import DEFAULT_CAPACITY, IngestQueue
from logcollectd.models import LogRecord


def _record(i: int) -> LogRecord:
    return LogRecord(received_at=i, source_host="10.0.0.1", message=f"msg-{i}")


class TestPushPop:
    def test_fifo_order(self):
        q = IngestQueue(capacity=10)
        for i in range(5):
            assert q.push(_record(i)) is True
        assert [q.pop(timeout=0.1).received_at for _ in range(5)] == [0, 1, 2, 3, 4]

    def test_pop_empty_returns_none_after_timeout(self):
        q = IngestQueue(capacity=10)
        start = time.monotonic()
        assert q.pop(timeout=0.2) is None
        assert time.monotonic() - start >= 0.15

    def test_len(self):
        q = IngestQueue(capacity=10)
        q.push(_record(1))
        q.push(_record(2))
        assert len(q) == 2

    def test_default_capacity(self):
        assert IngestQueue().capacity == DEFAULT_CAPACITY == 100_000

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            IngestQueue(capacity=0)


class TestOverflow:
    def test_drops_when_full(self):
        q = IngestQueue(capacity=3)
        for i in range(3):
            assert q.push(_record(i))
        assert q.push(_record(3)) is False
        assert len(q) == 3

    def test_full_push_does_not_block(self):
        q = IngestQueue(capacity=1)
        q.push(_record(0))
        start = time.monotonic()
        q.push(_record(1))
        assert time.monotonic() - start < 0.1

    def test_default_capacity_drops_the_next_record(self):
        q = IngestQueue()
        for i in range(DEFAULT_CAPACITY):
            q.push(_record(i))
        assert q.push(_record(DEFAULT_CAPACITY)) is False
        assert len(q) == DEFAULT_CAPACITY

    def test_space_frees_after_pop(self):
        q = IngestQueue(capacity=1)
        q.push(_record(0))
        q.pop(timeout=0.1)
        assert q.push(_record(1)) is True


class TestBlockingPop:
    def test_consumer_wakes_on_push(self):
        q = IngestQueue(capacity=10)
        result = []

        def consume():
            result.append(q.pop(timeout=5))

        t = threading.Thread(target=consume)
        t.start()
        time.sleep(0.1)
        q.push(_record(42))
        t.join(timeout=2)
        assert not t.is_alive()
        assert result[0].received_at == 42


class TestDrain:
    def test_drain_returns_all_in_order(self):
        q = IngestQueue(capacity=10)
        for i in range(4):
            q.push(_record(i))
        drained = q.drain()
        assert [r.received_at for r in drained] == [0, 1, 2, 3]
        assert len(q) == 0

    def test_drain_empty(self):
        assert IngestQueue(capacity=1).drain() == []
