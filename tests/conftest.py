"""Shared fixtures for block race tests."""

from __future__ import annotations

import asyncio

import pytest

from block_race.models import AggregateSnapshot, SettlementResult
from block_race.settlement import SettlementEngine


class RecordingReporter:
    """Keeps every report instead of logging it."""

    def __init__(self):
        self.settlements: list[SettlementResult] = []
        self.snapshots: list[AggregateSnapshot] = []

    def report_settlement(self, result: SettlementResult) -> None:
        self.settlements.append(result)

    def report_aggregates(self, snapshot: AggregateSnapshot) -> None:
        self.snapshots.append(snapshot)


class FakeAuthority:
    """Block timestamps from a dict; optional per-block delay and failures."""

    def __init__(self, timestamps=None, delays=None, failures=None):
        self.timestamps = dict(timestamps or {})
        self.delays = dict(delays or {})
        self.failures = set(failures or ())
        self.calls: list[int] = []

    async def __call__(self, block_number: int) -> int:
        self.calls.append(block_number)
        await asyncio.sleep(self.delays.get(block_number, 0))
        if block_number in self.failures:
            raise ConnectionError(f"get_block({block_number}) failed")
        return self.timestamps.get(block_number, 0)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def authority() -> FakeAuthority:
    return FakeAuthority()


@pytest.fixture
def make_engine(reporter, authority):
    def _make(contestants=("A", "B", "C"), **kwargs) -> SettlementEngine:
        return SettlementEngine(list(contestants), authority, reporter, **kwargs)

    return _make


@pytest.fixture
def make_authority():
    return FakeAuthority
