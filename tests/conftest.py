"""Shared fixtures: a controllable wall clock."""

from datetime import datetime

import pytest


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start.timestamp()

    def __call__(self) -> float:
        return self.now

    def set(self, dt: datetime):
        self.now = dt.timestamp()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 0, 30))

