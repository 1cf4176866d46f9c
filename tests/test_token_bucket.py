import time
from unittest import mock

import pytest

from alpenglow.token_bucket import CAPACITY, INITIAL_TOKENS, TokenBucket

ACCURACY = 0.03


async def _experiment(rate, elements, element_size):
    bucket = TokenBucket(rate)
    start = time.monotonic()
    for _ in range(elements):
        await bucket.wait_for(element_size)
    elapsed = time.monotonic() - start
    expected = elements * element_size / rate
    assert elapsed > expected * (1.0 - ACCURACY)
    assert elapsed < expected * (1.0 + ACCURACY)


@pytest.mark.asyncio
async def test_low_rate():
    await _experiment(256 * 1024, 1000, 1500)


@pytest.mark.asyncio
async def test_high_rate():
    await _experiment(100 * 1024 * 1024, 500_000, 1500)


def test_refill_adds_elapsed_tokens():
    with mock.patch("time.monotonic", return_value=100.0):
        bucket = TokenBucket(10)
    with mock.patch("time.monotonic", return_value=102.5):
        bucket.refill()
    assert bucket.bucket == INITIAL_TOKENS + 25
    assert bucket.last_refill == 102.5


def test_refill_caps_at_capacity():
    with mock.patch("time.monotonic", return_value=0.0):
        bucket = TokenBucket(1_000_000)
    with mock.patch("time.monotonic", return_value=60.0):
        bucket.refill()
    assert bucket.bucket == CAPACITY


@pytest.mark.asyncio
async def test_initial_tokens_available_immediately():
    bucket = TokenBucket(1)
    start = time.monotonic()
    await bucket.wait_for(INITIAL_TOKENS)
    assert time.monotonic() - start < 0.5
    assert bucket.bucket < INITIAL_TOKENS


def test_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        TokenBucket(0)


@pytest.mark.asyncio
async def test_rejects_request_above_capacity():
    bucket = TokenBucket(1000)
    with pytest.raises(ValueError):
        await bucket.wait_for(CAPACITY + 1)