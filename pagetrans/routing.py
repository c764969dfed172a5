# pagetrans/routing.py
"""
路由决策引擎：根据缓存状态与在途任务注册表，为一个文档/语言对决定处理策略。

决策按以下优先级求值，且没有任何副作用（不提升缓存、不修改注册表）：
1. 存在在途任务（未超过陈旧阈值或所有者仍在运行），或他处写入的存活 PENDING 条目 -> PROCESSING
2. 未过期的成功条目 -> COMPLETE
3. 已过期的成功条目 -> EXPIRED
4. 错误条目（包括陈旧的 PENDING） -> FAILED
5. 无条目 -> NOT_FOUND
"""

import structlog

from pagetrans.cache.tiered import TieredCache
from pagetrans.registry import JobRegistry
from pagetrans.types import (
    ArtifactRef,
    CacheStatus,
    FullReprocess,
    ReprocessWithCheck,
    RoutingDecision,
    RoutingStatus,
    UseCache,
    WaitForProcessing,
)

logger = structlog.get_logger(__name__)


class RoutingEngine:
    def __init__(self, cache: TieredCache, registry: JobRegistry):
        self.cache = cache
        self.registry = registry

    async def decide(self, key: str) -> RoutingDecision:
        """返回该键在当前时刻的路由决策。"""
        decision = await self._decide(key)
        logger.debug(
            "路由决策完成",
            key=key,
            status=decision.status.value,
            strategy=decision.strategy.kind,
        )
        return decision

    async def _decide(self, key: str) -> RoutingDecision:
        if self.registry.is_active(key):
            return RoutingDecision(
                key=key, status=RoutingStatus.PROCESSING, strategy=WaitForProcessing()
            )

        entry = await self.cache.lookup(key)
        if entry is None:
            return RoutingDecision(
                key=key, status=RoutingStatus.NOT_FOUND, strategy=FullReprocess()
            )

        ref = ArtifactRef(key=key, entry=entry)
        if entry.status is CacheStatus.PENDING:
            # 另一个进程正在处理，且尚未超过陈旧阈值
            return RoutingDecision(
                key=key, status=RoutingStatus.PROCESSING, strategy=WaitForProcessing()
            )
        if entry.status is CacheStatus.SUCCESS:
            return RoutingDecision(
                key=key, status=RoutingStatus.COMPLETE, strategy=UseCache(artifact_ref=ref)
            )
        if entry.status is CacheStatus.EXPIRED:
            return RoutingDecision(
                key=key,
                status=RoutingStatus.EXPIRED,
                strategy=ReprocessWithCheck(stale_ref=ref),
            )
        return RoutingDecision(key=key, status=RoutingStatus.FAILED, strategy=FullReprocess())
