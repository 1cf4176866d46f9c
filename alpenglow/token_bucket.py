"""Token bucket rate limiter for the simulated network."""

from __future__ import annotations

import asyncio
import time

INITIAL_TOKENS = 1500
"""Tokens a freshly created bucket starts with (one MTU-sized packet)."""
CAPACITY = 1000 * 1500
"""Maximum number of tokens a bucket can hold."""


class TokenBucket:
    """Token bucket refilled at ``refill_rate`` tokens per second."""

    def __init__(self, refill_rate: int) -> None:
        if refill_rate <= 0:
            raise ValueError("refill rate must be positive")
        self.bucket = INITIAL_TOKENS
        self.capacity = CAPACITY
        self.refill_rate = refill_rate
        self.last_refill = time.monotonic()

    def refill(self) -> None:
        """Add the tokens accrued since the last refill, up to capacity."""
        now = time.monotonic()
        added = int(self.refill_rate * (now - self.last_refill))
        self.bucket = min(self.bucket + added, self.capacity)
        self.last_refill = now

    async def wait_for(self, tokens: int) -> None:
        """Wait until ``tokens`` tokens are available, then take them."""
        if tokens > self.capacity:
            raise ValueError("request exceeds bucket capacity")
        while True:
            self.refill()
            if self.bucket >= tokens:
                self.bucket -= tokens
                return
            await asyncio.sleep((tokens - self.bucket) / self.refill_rate)