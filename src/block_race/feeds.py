"""Ethereum JSON-RPC websocket transport.

BlockFeed subscribes to newHeads on one provider and reports every block
number it announces. BlockTimestampAuthority reads block header timestamps
from the primary provider over its own persistent connection.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from web3 import AsyncWeb3, WebSocketProvider

log = logging.getLogger("race.feeds")

# (contestant, block_number)
BlockCallback = Callable[[str, int], Any]


def _block_number(raw: int | str) -> int:
    """newHeads numbers arrive as ints once formatted, hex strings otherwise."""
    if isinstance(raw, str):
        return int(raw, 16)
    return int(raw)


class BlockFeed:
    """
    newHeads subscription for a single contestant with auto-reconnect.

    Blocks announced while disconnected are not replayed.
    """

    def __init__(
        self,
        contestant: str,
        url: str,
        on_block: BlockCallback,
        reconnect_delay: float = 5.0,
    ):
        """
        Args:
            contestant: Name reported alongside each block
            url: ws:// or wss:// endpoint
            on_block: Called with (contestant, block_number) per header
            reconnect_delay: Seconds to wait before reconnecting
        """
        self.contestant = contestant
        self.url = url
        self.on_block = on_block
        self.reconnect_delay = reconnect_delay

        self.connected = False
        self.reconnect_count = 0
        self.block_count = 0

    async def run(self) -> None:
        """Stream blocks until cancelled, reconnecting on errors."""
        while True:
            try:
                await self._ws_loop()
            except asyncio.CancelledError:
                log.info("FEED %s │ cancelled", self.contestant)
                raise
            except Exception as e:
                self.connected = False
                self.reconnect_count += 1
                log.warning(
                    "FEED %s │ error: %s │ reconnecting in %.0fs (attempt=%d)",
                    self.contestant, e, self.reconnect_delay, self.reconnect_count,
                )
                await asyncio.sleep(self.reconnect_delay)

    async def _ws_loop(self) -> None:
        log.info("FEED %s │ connecting", self.contestant)
        async with AsyncWeb3(WebSocketProvider(self.url)) as w3:
            subscription_id = await w3.eth.subscribe("newHeads")
            self.connected = True
            log.info("FEED %s │ subscribed to newHeads (id=%s)", self.contestant, subscription_id)

            async for payload in w3.socket.process_subscriptions():
                header = payload["result"]
                block_number = _block_number(header["number"])
                self.block_count += 1
                log.debug("BLOCK_SEEN │ %s block=%d", self.contestant, block_number)
                self.on_block(self.contestant, block_number)

        raise ConnectionError("subscription stream ended")


class BlockTimestampAuthority:
    """Fetches a block's header timestamp (epoch seconds) from one provider."""

    def __init__(self, url: str):
        self.url = url
        self._w3: AsyncWeb3 | None = None

    async def __call__(self, block_number: int) -> int:
        w3 = await self._connect()
        try:
            block = await w3.eth.get_block(block_number)
        except Exception:
            await self.close()
            raise
        return int(block["timestamp"])

    async def _connect(self) -> AsyncWeb3:
        if self._w3 is None:
            log.info("AUTHORITY │ connecting")
            self._w3 = await AsyncWeb3(WebSocketProvider(self.url))
        return self._w3

    async def close(self) -> None:
        w3, self._w3 = self._w3, None
        if w3 is None:
            return
        try:
            await w3.provider.disconnect()
        except Exception as e:
            log.debug("AUTHORITY │ disconnect failed: %s", e)
