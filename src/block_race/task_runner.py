"""Serial task runner — executes async tasks one at a time, in submission order.

submit() never suspends. The first submit while IDLE moves the runner to
DRAINING and spawns a single pump task; the pump drains the buffer and moves
back to IDLE once it is empty. Re-entrant submits while DRAINING only enqueue. A task that fails or is
cancelled settles only its own future; cancelling the pump cancels every
future still queued.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from block_race.fifo import FifoBuffer

log = logging.getLogger("race.runner")

T = TypeVar("T")


class RunnerState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"


class SerialTaskRunner:
    """
    Serializes async tasks without locks.

    Usage:
        runner = SerialTaskRunner()
        future = runner.submit(lambda: fetch_and_update(block_number))
        result = await future
    """

    def __init__(self) -> None:
        # (wrapped task, caller future)
        self._buffer: FifoBuffer[tuple[Callable[[], Awaitable[None]], asyncio.Future]] = FifoBuffer()
        self._state = RunnerState.IDLE
        self._pump: asyncio.Task | None = None

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def pending(self) -> int:
        """Tasks queued but not yet started."""
        return self._buffer.size()

    def submit(self, task: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """
        Queue a zero-argument coroutine function.

        Args:
            task: Called once, when every earlier task has finished

        Returns:
            Future resolved with the task's result or failed with its exception;
            cancelled if the task itself raises CancelledError
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()

        async def _relay() -> None:
            try:
                result = await task()
            except asyncio.CancelledError:
                future.cancel()
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                log.warning("RUNNER │ task cancelled, continuing")
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)

        self._buffer.push((_relay, future))
        if self._state is RunnerState.IDLE:
            self._state = RunnerState.DRAINING
            self._pump = loop.create_task(self._drain())
        return future

    async def _drain(self) -> None:
        log.debug("RUNNER │ draining (pending=%d)", self._buffer.size())
        try:
            while self._buffer.size() > 0:
                relay, _ = self._buffer.pop()
                await relay()
        except asyncio.CancelledError:
            # The pump itself was cancelled: nothing queued will ever run
            while self._buffer.size() > 0:
                _, future = self._buffer.pop()
                future.cancel()
            raise
        finally:
            self._state = RunnerState.IDLE
            log.debug("RUNNER │ idle")

    async def join(self) -> None:
        """Wait until every task submitted so far has finished."""
        while self._pump is not None and not self._pump.done():
            await asyncio.wait({self._pump})
