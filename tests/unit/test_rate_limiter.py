# tests/unit/test_rate_limiter.py
"""
针对 `pagetrans.rate_limiter` 模块的单元测试。

验证令牌的消耗、补充以及在令牌不足时的异步等待行为。
"""

import time
from unittest.mock import AsyncMock

import pytest
from pytest_mock import MockerFixture

from pagetrans.exceptions import ConfigurationError
from pagetrans.rate_limiter import RateLimiter


@pytest.mark.parametrize(
    "rate, capacity",
    [
        (0, 10),
        (-1, 10),
        (10, 0),
        (10, -1),
    ],
)
def test_rate_limiter_init_with_invalid_args(rate: float, capacity: float) -> None:
    """非正的速率或容量在构造时被拒绝。"""
    with pytest.raises(ConfigurationError, match="速率和容量必须为正数"):
        RateLimiter(refill_rate=rate, capacity=capacity)


def test_per_second_defaults_capacity_to_rate() -> None:
    limiter = RateLimiter.per_second(5)
    assert limiter.refill_rate == 5
    assert limiter.capacity == 5

    slow = RateLimiter.per_second(0.5)
    assert slow.capacity == 1.0


@pytest.mark.asyncio
async def test_acquire_succeeds_immediately_when_tokens_are_sufficient() -> None:
    limiter = RateLimiter(refill_rate=10, capacity=10)
    assert limiter.tokens == 10
    await limiter.acquire(5)
    assert limiter.tokens == 5


@pytest.mark.asyncio
async def test_acquire_waits_when_tokens_are_insufficient(
    mocker: MockerFixture,
) -> None:
    """令牌不足时 acquire 异步等待，等待时长由缺口与速率决定。"""
    limiter = RateLimiter(refill_rate=10, capacity=10)
    mock_sleep = mocker.patch("asyncio.sleep", new_callable=AsyncMock)

    start_time = time.monotonic()
    time_sequence = [start_time, start_time, start_time + 0.5]

    def monotonic_side_effect() -> float:
        return time_sequence.pop(0) if time_sequence else start_time + 0.5

    mocker.patch("time.monotonic", side_effect=monotonic_side_effect)

    await limiter.acquire(10)
    assert limiter.tokens == 0

    await limiter.acquire(5)

    mock_sleep.assert_called_once()
    waited_time = mock_sleep.call_args[0][0]
    assert pytest.approx(waited_time) == 0.5
    assert pytest.approx(limiter.total_wait_time) == 0.5
    assert limiter.throttled == 1
    assert limiter.tokens == 0


@pytest.mark.asyncio
async def test_refill_logic_does_not_exceed_capacity(mocker: MockerFixture) -> None:
    limiter = RateLimiter(refill_rate=10, capacity=10)
    limiter.tokens = 2
    start_time = limiter.last_refill_time

    # 流逝 2 秒足以填满令牌桶
    mocker.patch("time.monotonic", return_value=start_time + 2)

    await limiter.acquire(1)

    assert limiter.tokens == 9


@pytest.mark.asyncio
async def test_acquire_more_than_capacity_raises_error() -> None:
    limiter = RateLimiter(refill_rate=10, capacity=10)
    with pytest.raises(ValueError, match="请求的令牌数不能超过桶的容量"):
        await limiter.acquire(11)
