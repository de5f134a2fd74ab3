"""Running totals across settled blocks.

Owned by the settlement engine and mutated only from tasks running inside
the serial runner, so there is a single writer by construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from block_race.models import AggregateSnapshot, SettlementResult


@dataclass
class Aggregates:
    """Counters start at zero for every contestant and are never reset."""

    contestants: tuple[str, ...]
    block_count: int = 0
    wins_by_contestant: dict[str, int] = field(default_factory=dict)
    total_lag_by_contestant: dict[str, int] = field(default_factory=dict)
    total_lag_from_timestamp: int = 0

    def __post_init__(self) -> None:
        for c in self.contestants:
            self.wins_by_contestant.setdefault(c, 0)
            self.total_lag_by_contestant.setdefault(c, 0)

    def record(self, result: SettlementResult) -> None:
        """Apply one settlement."""
        self.block_count += 1
        self.wins_by_contestant[result.winner] += 1
        self.total_lag_from_timestamp += result.timestamp_lag_ms
        for contestant, lag in result.lag_by_contestant.items():
            self.total_lag_by_contestant[contestant] += lag

    def snapshot(self) -> AggregateSnapshot:
        return AggregateSnapshot(
            block_count=self.block_count,
            wins_by_contestant=dict(self.wins_by_contestant),
            total_lag_by_contestant=dict(self.total_lag_by_contestant),
            total_lag_from_timestamp=self.total_lag_from_timestamp,
        )
