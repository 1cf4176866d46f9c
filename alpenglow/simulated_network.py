"""Network interface of a single node attached to a simulated network core."""

from __future__ import annotations

import asyncio
import re
from typing import Protocol

from .token_bucket import TokenBucket

MAX_NODE_ID = 2**64 - 1
"""Largest node ID an address may name."""

_NODE_ID_PATTERN = re.compile(r"\+?[0-9]+")


class NetworkError(Exception):
    """Raised when sending or receiving on a network interface fails."""


class _Core(Protocol):
    async def send(self, payload: bytes, from_node: int, to_node: int) -> None: ...


def parse_node_id(address: str) -> int:
    """Parse a simulated network address, which is a node ID in decimal."""
    if not isinstance(address, str) or not _NODE_ID_PATTERN.fullmatch(address):
        raise NetworkError(f"invalid address: {address!r}")
    node_id = int(address)
    if node_id > MAX_NODE_ID:
        raise NetworkError(f"node id out of range: {address!r}")
    return node_id


class SimulatedNetwork:
    """Network interface of one node in a simulated network.

    Outgoing packets are handed to ``core``, optionally after waiting on the
    upload rate ``limiter``. Incoming packets arrive on ``receiver``; a
    ``None`` placed on it marks the channel as closed.
    """

    def __init__(
        self,
        node_id: int,
        core: _Core,
        receiver: asyncio.Queue[bytes | None],
        limiter: TokenBucket | None = None,
    ) -> None:
        self.node_id = node_id
        self.core = core
        self._receiver = receiver
        self._limiter = limiter
        self._limiter_lock = asyncio.Lock()

    @property
    def limiter(self) -> TokenBucket | None:
        """The upload rate limiter, if bandwidth is limited."""
        return self._limiter

    async def send(self, payload: bytes, to: str) -> None:
        """Send ``payload`` to the node whose ID is given by the address ``to``."""
        to_node = parse_node_id(to)
        data = bytes(payload)
        if self._limiter is not None:
            async with self._limiter_lock:
                await self._limiter.wait_for(len(data))
        await self.core.send(data, self.node_id, to_node)

    async def receive(self) -> bytes:
        """Wait for the next incoming packet.

        Raises :class:`NetworkError` once the channel has been closed.
        """
        payload = await self._receiver.get()
        if payload is None:
            # keep the channel closed for any later receivers
            self._receiver.put_nowait(None)
            raise NetworkError("channel closed")
        return payload