# pagetrans/rate_limiter.py
"""
本模块提供一个基于令牌桶算法的异步速率限制器。

进程内的所有批次请求共享同一个实例，因此对外只暴露需要加锁的异步 `acquire`。
"""

import asyncio
import time

import structlog

from pagetrans.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class RateLimiter:
    """令牌桶限流器。`throttled` 与 `total_wait_time` 记录被限流的次数与累计等待秒数。"""

    def __init__(self, refill_rate: float, capacity: float):
        if refill_rate <= 0 or capacity <= 0:
            raise ConfigurationError("速率和容量必须为正数")
        self.refill_rate = refill_rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill_time = time.monotonic()
        self.throttled = 0
        self.total_wait_time = 0.0
        self._lock = asyncio.Lock()

    @classmethod
    def per_second(cls, requests_per_second: float, burst: float | None = None) -> "RateLimiter":
        """按“每秒请求数”构造限流器，突发容量默认与速率相同（至少为 1）。"""
        capacity = burst if burst is not None else max(1.0, requests_per_second)
        return cls(refill_rate=requests_per_second, capacity=capacity)

    def _take(self, tokens_needed: float) -> float:
        """[私有] 补充令牌后尝试扣减。成功返回 0，否则返回还需等待的秒数。调用方须持有锁。"""
        current = time.monotonic()
        elapsed = current - self.last_refill_time
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
            self.last_refill_time = current
        if self.tokens >= tokens_needed:
            self.tokens -= tokens_needed
            return 0.0
        return (tokens_needed - self.tokens) / self.refill_rate

    async def acquire(self, tokens_needed: float = 1) -> None:
        """获取令牌，不足时异步等待。等待发生在锁外，其他协程可以同时排队。"""
        if tokens_needed > self.capacity:
            raise ValueError("请求的令牌数不能超过桶的容量")

        waited = False
        while True:
            async with self._lock:
                wait_time = self._take(tokens_needed)
            if not wait_time:
                return
            if not waited:
                self.throttled += 1
                waited = True
            self.total_wait_time += wait_time
            logger.debug("速率限制生效，等待令牌", wait_seconds=round(wait_time, 3))
            await asyncio.sleep(wait_time)
