"""Immutable records passed from the settlement engine to the reporter."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class SettlementResult:
    """
    Outcome of one settled block.

    Attributes:
        block_number: Block every contestant reported
        winner: First contestant to report it
        winning_time_ms: Winner's arrival time (epoch ms)
        block_timestamp: Block header timestamp (epoch seconds)
        timestamp_lag_ms: winning_time_ms - block_timestamp * 1000
        ranking: All contestants, fastest first
        lag_by_contestant: Non-winners only, ms behind the winner, rank order
    """

    block_number: int
    winner: str
    winning_time_ms: int
    block_timestamp: int
    timestamp_lag_ms: int
    ranking: tuple[str, ...]
    lag_by_contestant: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AggregateSnapshot:
    """Read-only copy of the running totals."""

    block_count: int
    wins_by_contestant: dict[str, int]
    total_lag_by_contestant: dict[str, int]
    total_lag_from_timestamp: int

    @property
    def average_lag_ms(self) -> dict[str, float]:
        """Mean ms behind the winner per contestant (0 on blocks it won)."""
        if self.block_count == 0:
            return {c: 0.0 for c in self.total_lag_by_contestant}
        return {c: lag / self.block_count for c, lag in self.total_lag_by_contestant.items()}

    @property
    def average_timestamp_lag_ms(self) -> float:
        if self.block_count == 0:
            return 0.0
        return self.total_lag_from_timestamp / self.block_count
