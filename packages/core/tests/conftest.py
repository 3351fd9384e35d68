from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from prfleet_core.coordinator import CoordinationService


class FakeClock:
    """Manually advanced UTC clock for liveness and staleness tests."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(clock):
    return CoordinationService(stale_agent_timeout=300, stale_run_threshold=300, clock=clock)
