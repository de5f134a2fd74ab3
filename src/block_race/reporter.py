"""Human-readable race results, written through logging."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, runtime_checkable

from block_race.models import AggregateSnapshot, SettlementResult

log = logging.getLogger("race.report")


def format_time(timestamp_ms: int) -> str:
    """Local wall-clock time as h:mm:ss AM/PM."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000)
    return f"{dt.hour % 12 or 12}:{dt:%M:%S %p}"


def whole_seconds(ms: int) -> int:
    """Milliseconds to whole seconds, truncated toward zero."""
    return int(ms / 1000)


@runtime_checkable
class Reporter(Protocol):
    """Sink for settled blocks and aggregate snapshots."""

    def report_settlement(self, result: SettlementResult) -> None: ...

    def report_aggregates(self, snapshot: AggregateSnapshot) -> None: ...


class LogReporter:
    """Writes one block summary per settlement and periodic aggregate tables."""

    def __init__(self, logger: logging.Logger | None = None):
        self._log = logger or log

    def report_settlement(self, result: SettlementResult) -> None:
        lag = result.timestamp_lag_ms
        self._log.info(
            "Block %d published at %s by %s!",
            result.block_number, format_time(result.winning_time_ms), result.winner,
        )
        self._log.info(
            "  ...%ds %s the block timestamp.",
            abs(whole_seconds(lag)), "before" if lag < 0 else "after",
        )
        for contestant, trailing in result.lag_by_contestant.items():
            self._log.info("%s trails the leader by %ds.", contestant, whole_seconds(trailing))
        self._log.info("")

    def report_aggregates(self, snapshot: AggregateSnapshot) -> None:
        n = snapshot.block_count
        self._log.info("AGGREGATION TIME!")
        self._log.info("")
        self._log.info("Over the last %d blocks...", n)
        self._log.info("")
        self._log.info("Times each provider published first:")
        self._log.info("")
        for provider, wins in sorted(
            snapshot.wins_by_contestant.items(), key=lambda kv: kv[1], reverse=True
        ):
            self._log.info("  %s: %d", provider, wins)
        self._log.info("")
        self._log.info("Average seconds trailing the leader:")
        self._log.info("")
        for provider, avg_ms in sorted(snapshot.average_lag_ms.items(), key=lambda kv: kv[1]):
            self._log.info("  %s: %.2fs", provider, avg_ms / 1000)
        self._log.info("")
        self._log.info(
            "Average time from block timestamp to provider discovery: %.2fs",
            snapshot.average_timestamp_lag_ms / 1000,
        )
        self._log.info("")
