"""
Block race package.

Contains:
- fifo.py: FifoBuffer backing the serial runner
- task_runner.py: SerialTaskRunner, RunnerState
- aggregator.py: Aggregates running totals
- settlement.py: SettlementEngine, ranking and lag computation
- reporter.py: LogReporter
- feeds.py: BlockFeed, BlockTimestampAuthority (web3 websocket transport)
- config.py: RaceConfig loading and validation
- bot.py: CLI entry point
"""

from block_race.aggregator import Aggregates
from block_race.fifo import EmptyBufferError, FifoBuffer
from block_race.models import AggregateSnapshot, SettlementResult
from block_race.settlement import (
    SettlementEngine,
    UnknownContestantError,
    compute_settlement,
    rank_contestants,
)
from block_race.task_runner import RunnerState, SerialTaskRunner

__all__ = [
    # Buffer
    "EmptyBufferError",
    "FifoBuffer",
    # Runner
    "RunnerState",
    "SerialTaskRunner",
    # Models
    "AggregateSnapshot",
    "SettlementResult",
    # Engine
    "Aggregates",
    "SettlementEngine",
    "UnknownContestantError",
    "compute_settlement",
    "rank_contestants",
]
