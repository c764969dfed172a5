# pagetrans/client.py
"""
翻译客户端：在共享的速率限制与并发上限之下，把批次提交给翻译引擎。

职责：
- 每个请求先占用共享信号量的一个槽位，再从共享令牌桶取得令牌；
- 单次请求受 `request_timeout` 限制（`asyncio.wait_for`）；
- 可重试失败（超时、传输错误、5xx、429、单条可重试错误）按
  `initial_backoff * 2**attempt` 指数退避重试，上限为 `max_backoff`；
- 重试耗尽后，仍然失败的条目以 `EngineError` 返回。传输与数据错误从不抛给调用者；
- 每个批次完成后把耗时与失败条目数反馈给自适应批次预算。
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from pagetrans.batch import AdaptiveBatchSizer
from pagetrans.config import RetryPolicyConfig, ThrottleConfig
from pagetrans.engines.base import BaseTranslationEngine
from pagetrans.exceptions import CapacityError, DataError, TransportError
from pagetrans.rate_limiter import RateLimiter
from pagetrans.types import Batch, EngineError, ItemResult

logger = structlog.get_logger(__name__)


@dataclass
class ThrottleResources:
    """进程内所有任务共享的限流器与并发信号量。"""

    rate_limiter: RateLimiter
    semaphore: asyncio.Semaphore

    @classmethod
    def from_config(cls, config: ThrottleConfig) -> ThrottleResources:
        return cls(
            rate_limiter=RateLimiter.per_second(
                config.requests_per_second, config.bucket_capacity
            ),
            semaphore=asyncio.Semaphore(config.max_concurrency),
        )


@dataclass
class ClientStats:
    requests: int = 0
    retries: int = 0
    timeouts: int = 0
    split_batches: int = 0
    failed_items: int = 0
    errors: dict[str, int] = field(default_factory=dict)

    def record_error(self, error: Exception) -> None:
        name = type(error).__name__
        self.errors[name] = self.errors.get(name, 0) + 1


class TranslationClient:
    """把批次翻译为与 `batch.items` 一一对齐的结果列表。"""

    def __init__(
        self,
        engine: BaseTranslationEngine[Any],
        throttle: ThrottleResources,
        throttle_config: ThrottleConfig | None = None,
        retry_policy: RetryPolicyConfig | None = None,
        sizer: AdaptiveBatchSizer | None = None,
    ):
        self.engine = engine
        self.throttle = throttle
        self.throttle_config = throttle_config or ThrottleConfig()
        self.retry_policy = retry_policy or RetryPolicyConfig()
        self.sizer = sizer
        self.stats = ClientStats()

    async def translate(self, batch: Batch) -> list[ItemResult]:
        """
        翻译一个批次。批次内的文本项共享同一个语言对。

        返回的列表长度与顺序和 `batch.items` 完全一致。
        """
        if not batch.items:
            return []

        texts = [item.raw_text for item in batch.items]
        source_lang = batch.items[0].source_lang
        target_lang = batch.items[0].target_lang
        started = time.monotonic()

        results, error = await self._translate_with_retry(texts, source_lang, target_lang)

        unresolved = [i for i, result in enumerate(results) if result is None]
        if unresolved:
            assert error is not None
            if self.retry_policy.split_failed_batches and len(unresolved) > 1:
                self.stats.split_batches += 1
                logger.warning(
                    "整批请求重试耗尽，退化为逐条提交",
                    batch_id=batch.batch_id,
                    items=len(unresolved),
                    error=str(error),
                )
                singles = await asyncio.gather(
                    *(
                        self._translate_single(texts[i], source_lang, target_lang)
                        for i in unresolved
                    )
                )
                for i, result in zip(unresolved, singles):
                    results[i] = result
            else:
                for i in unresolved:
                    results[i] = self._as_item_error(error)

        final: list[ItemResult] = [r for r in results if r is not None]
        failed = sum(1 for r in final if isinstance(r, EngineError))
        self.stats.failed_items += failed
        latency = time.monotonic() - started
        if self.sizer is not None:
            self.sizer.record(latency, failed_items=failed)

        log = logger.warning if failed else logger.debug
        log(
            "批次翻译完成",
            batch_id=batch.batch_id,
            items=len(final),
            failed=failed,
            latency=round(latency, 3),
        )
        return final

    async def _translate_single(
        self, text: str, source_lang: str, target_lang: str
    ) -> ItemResult:
        results, error = await self._translate_with_retry([text], source_lang, target_lang)
        if results[0] is not None:
            return results[0]
        assert error is not None
        return self._as_item_error(error)

    async def _translate_with_retry(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> tuple[list[ItemResult | None], Exception | None]:
        """
        [私有] 对一组文本应用重试逻辑。

        返回 (结果列表, 最后一次整批错误)。整批失败且未能恢复的条目在结果列表中为 None。
        """
        results: list[ItemResult | None] = [None] * len(texts)
        pending = list(range(len(texts)))
        max_retries = self.retry_policy.max_retries

        for attempt in range(max_retries + 1):
            try:
                outputs = await self._submit(
                    [texts[i] for i in pending], source_lang, target_lang
                )
            except TransportError as e:
                self.stats.record_error(e)
                if not e.retryable or attempt >= max_retries:
                    return results, e
                delay = self._backoff(attempt, e)
                self.stats.retries += 1
                logger.warning(
                    f"请求失败，将在 {delay:.2f}s 后重试",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    error=str(e),
                )
                await asyncio.sleep(delay)
                continue
            except DataError as e:
                self.stats.record_error(e)
                return results, e

            retryable: list[int] = []
            for index, output in zip(pending, outputs):
                if (
                    isinstance(output, EngineError)
                    and output.is_retryable
                    and attempt < max_retries
                ):
                    retryable.append(index)
                else:
                    results[index] = output

            if not retryable:
                break

            pending = retryable
            delay = self._backoff(attempt)
            self.stats.retries += 1
            logger.warning(
                f"批次中包含可重试错误，将在 {delay:.2f}s 后重试",
                retry_count=len(pending),
                attempt=attempt + 1,
            )
            await asyncio.sleep(delay)

        return results, None

    async def _submit(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[ItemResult]:
        """[私有] 在并发槽位与令牌桶之下执行一次带超时的请求。"""
        timeout = self.throttle_config.request_timeout
        async with self.throttle.semaphore:
            await self.throttle.rate_limiter.acquire()
            self.stats.requests += 1
            try:
                return await asyncio.wait_for(
                    self.engine.atranslate_batch(texts, target_lang, source_lang),
                    timeout=timeout,
                )
            except asyncio.TimeoutError as e:
                self.stats.timeouts += 1
                raise TransportError(
                    f"翻译请求超过 {timeout}s 未完成", retryable=True
                ) from e
            except (TransportError, DataError):
                raise
            except Exception as e:
                logger.error(
                    "翻译引擎发生未预期的异常", engine=self.engine.name, exc_info=True
                )
                raise DataError(f"引擎 '{self.engine.name}' 异常: {e}") from e

    def _backoff(self, attempt: int, error: Exception | None = None) -> float:
        delay = self.retry_policy.initial_backoff * (2**attempt)
        if isinstance(error, CapacityError) and error.retry_after:
            delay = max(delay, error.retry_after)
        return min(delay, self.retry_policy.max_backoff)

    @staticmethod
    def _as_item_error(error: Exception) -> EngineError:
        retryable = isinstance(error, TransportError) and error.retryable
        return EngineError(error_message=str(error), is_retryable=retryable)
