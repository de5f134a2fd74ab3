"""Settlement engine — records arrivals, detects settled blocks, ranks contestants.

A block is settled once every contestant has reported it. Detection happens
synchronously in on_arrival(); the ranking, aggregate update and cleanup run
as one task on the SerialTaskRunner, so settlements never interleave and run
in the order they became ready (not block-number order).

Known limitation: a block that some contestant never reports keeps its
records forever. tracked_blocks() lists what is outstanding.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from functools import partial

from block_race.aggregator import Aggregates
from block_race.models import AggregateSnapshot, SettlementResult
from block_race.reporter import Reporter
from block_race.task_runner import SerialTaskRunner

log = logging.getLogger("race.settlement")

# Block number -> header timestamp in epoch seconds
TimeAuthority = Callable[[int], Awaitable[int]]

DEFAULT_AGGREGATE_EVERY = 10


class UnknownContestantError(KeyError):
    """Arrival reported for a contestant the engine was not built with."""


def now_ms() -> int:
    return int(time.time() * 1000)


def rank_contestants(times: Mapping[str, int], order: Sequence[str]) -> list[str]:
    """Fastest first. Equal times keep declaration order (sorted() is stable)."""
    return sorted(order, key=lambda c: times[c])


def compute_settlement(
    block_number: int,
    times: Mapping[str, int],
    order: Sequence[str],
    block_timestamp: int,
) -> SettlementResult:
    """Rank one block's arrivals and derive winner, loser lags and timestamp lag."""
    ranking = rank_contestants(times, order)
    winner = ranking[0]
    winning_time = times[winner]
    return SettlementResult(
        block_number=block_number,
        winner=winner,
        winning_time_ms=winning_time,
        block_timestamp=block_timestamp,
        timestamp_lag_ms=winning_time - block_timestamp * 1000,
        ranking=tuple(ranking),
        lag_by_contestant={c: times[c] - winning_time for c in ranking[1:]},
    )


class SettlementEngine:
    """
    Owns arrival records and the aggregate state for a fixed contestant set.

    Usage:
        engine = SettlementEngine(["Alchemy", "Infura"], authority, LogReporter())
        feed = BlockFeed("Alchemy", url, engine.on_arrival)
    """

    def __init__(
        self,
        contestants: Sequence[str],
        time_authority: TimeAuthority,
        reporter: Reporter,
        runner: SerialTaskRunner | None = None,
        aggregate_every: int = DEFAULT_AGGREGATE_EVERY,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Args:
            contestants: Feed names in declaration order; also the tie-break order
            time_authority: Coroutine returning a block's timestamp in seconds
            reporter: Receives each SettlementResult and periodic snapshots
            runner: Serial runner for settlement tasks (a private one by default)
            aggregate_every: Report a snapshot every N settled blocks
            clock: Epoch milliseconds, used when on_arrival gets no timestamp
        """
        if not contestants:
            raise ValueError("At least one contestant is required")
        if len(set(contestants)) != len(contestants):
            raise ValueError(f"Duplicate contestant names: {list(contestants)}")
        if aggregate_every <= 0:
            raise ValueError(f"aggregate_every must be > 0, got {aggregate_every}")

        self._contestants = tuple(contestants)
        self._time_authority = time_authority
        self._reporter = reporter
        self._runner = runner or SerialTaskRunner()
        self._aggregate_every = aggregate_every
        self._clock = clock

        self._times_by_block: dict[str, dict[int, int]] = {c: {} for c in self._contestants}
        self._aggregates = Aggregates(contestants=self._contestants)
        self.failed_count = 0

    @property
    def contestants(self) -> tuple[str, ...]:
        return self._contestants

    def on_arrival(
        self,
        contestant: str,
        block_number: int,
        timestamp_ms: int | None = None,
    ) -> asyncio.Future[SettlementResult] | None:
        """
        Record that `contestant` announced `block_number`.

        Must be called from the event loop thread. The first arrival per
        contestant and block wins; repeats are ignored.

        Returns:
            Future of the settlement if this arrival settled the block, else None
        """
        times = self._times_by_block.get(contestant)
        if times is None:
            raise UnknownContestantError(contestant)
        if block_number in times:
            log.debug("ARRIVAL_DUP │ %s block=%d", contestant, block_number)
            return None

        times[block_number] = self._clock() if timestamp_ms is None else timestamp_ms
        return self._submit_if_settled(block_number)

    def arrival_time(self, contestant: str, block_number: int) -> int | None:
        if contestant not in self._times_by_block:
            raise UnknownContestantError(contestant)
        return self._times_by_block[contestant].get(block_number)

    def tracked_blocks(self) -> set[int]:
        """Block numbers with at least one outstanding arrival record."""
        blocks: set[int] = set()
        for times in self._times_by_block.values():
            blocks.update(times)
        return blocks

    def snapshot(self) -> AggregateSnapshot:
        return self._aggregates.snapshot()

    async def join(self) -> None:
        """Wait for every settlement submitted so far."""
        await self._runner.join()

    def _submit_if_settled(self, block_number: int) -> asyncio.Future[SettlementResult] | None:
        times: dict[str, int] = {}
        for contestant in self._contestants:
            t = self._times_by_block[contestant].get(block_number)
            if t is None:
                return None
            times[contestant] = t

        log.debug("SETTLED │ block=%d queued=%d", block_number, self._runner.pending)
        future = self._runner.submit(partial(self._settle, block_number, times))
        future.add_done_callback(partial(self._log_failure, block_number))
        return future

    async def _settle(self, block_number: int, times: dict[str, int]) -> SettlementResult:
        try:
            block_timestamp = await self._time_authority(block_number)
        except (Exception, asyncio.CancelledError):
            # A failed block is dropped, not retried
            self._forget(block_number)
            raise

        result = compute_settlement(block_number, times, self._contestants, int(block_timestamp))
        self._aggregates.record(result)
        self._forget(block_number)
        self._reporter.report_settlement(result)

        if self._aggregates.block_count % self._aggregate_every == 0:
            self._reporter.report_aggregates(self._aggregates.snapshot())
        return result

    def _forget(self, block_number: int) -> None:
        for times in self._times_by_block.values():
            times.pop(block_number, None)

    def _log_failure(self, block_number: int, future: asyncio.Future) -> None:
        if future.cancelled():
            self.failed_count += 1
            log.warning("SETTLE_FAIL │ block=%d cancelled", block_number)
            return
        exc = future.exception()
        if exc is not None:
            self.failed_count += 1
            log.warning("SETTLE_FAIL │ block=%d error=%s", block_number, exc)
