# pagetrans/cache/tiered.py
"""
多层缓存：内存层（LRU）+ 持久层（任意 PersistentStore）。

- 读路径 `get`：先查内存层，未命中再查持久层，持久层命中会被提升到内存层；
  任何已过期的条目都视为未命中，并从内存层惰性移除。
- 路由视图 `lookup`：不提升、不改变 LRU 顺序，已过期的成功条目以 EXPIRED 报告，
  其余已过期的条目视为不存在，
  超过 `pending_staleness` 的 PENDING 条目以 ERROR 报告。
- 写路径 `put`：先写持久层再写内存层（write-through）。
所有状态的条目都带有 `expires_at = now + ttl`，内存层与持久层同时到期。
成功条目在持久层的保留时长为逻辑 TTL + `stale_retention`，以便路由仍能看到过期产物。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from pagetrans.cache.memory import MemoryTier
from pagetrans.config import CacheConfig
from pagetrans.interfaces import PersistentStore
from pagetrans.types import CacheEntry, CacheStatus
from pagetrans.utils import now

logger = structlog.get_logger(__name__)


@dataclass
class CacheStats:
    memory_hits: int = 0
    persistent_hits: int = 0
    misses: int = 0
    promotions: int = 0
    writes: int = 0
    invalidations: int = 0
    expired: int = 0
    corrupt: int = 0
    evictions: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class TieredCache:
    """文本译文与文档产物共用的多层缓存。"""

    def __init__(
        self,
        store: PersistentStore,
        config: CacheConfig | None = None,
        memory: MemoryTier | None = None,
    ):
        self.config = config or CacheConfig()
        self.store = store
        self.memory = memory or MemoryTier(self.config.memory_maxsize)
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        self._stats.evictions = self.memory.evictions
        return self._stats

    async def get(self, key: str) -> CacheEntry | None:
        """服务路径读取。返回未过期的条目，或 None。"""
        at = now()
        entry = await self.memory.get(key)
        if entry is not None:
            if entry.is_expired(at):
                self._stats.expired += 1
                await self.memory.delete(key)
                return None
            self._stats.memory_hits += 1
            return self._status_view(entry, at)

        entry = await self._read_store(key)
        if entry is None:
            self._stats.misses += 1
            return None
        if entry.is_expired(at):
            self._stats.expired += 1
            return None

        self._stats.persistent_hits += 1
        await self.memory.set(entry)
        self._stats.promotions += 1
        logger.debug("持久层命中，已提升到内存层", key=key)
        return self._status_view(entry, at)

    async def lookup(self, key: str) -> CacheEntry | None:
        """路由视图读取，没有任何副作用。"""
        entry = await self.memory.peek(key)
        if entry is None:
            entry = await self._read_store(key)
        if entry is None:
            return None
        at = now()
        # 过期的成功条目仍需报告为 EXPIRED，其余过期条目等同于不存在
        if entry.is_expired(at) and entry.status is not CacheStatus.SUCCESS:
            return None
        return self._status_view(entry, at)

    async def put(
        self,
        key: str,
        value: str | None,
        status: CacheStatus,
        ttl: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> CacheEntry:
        """写入（替换）一个条目，`expires_at` 为 now + ttl。"""
        if status is CacheStatus.EXPIRED:
            raise ValueError("EXPIRED 只会在读取时被报告，不能被写入")

        at = now()
        previous = await self.memory.peek(key)
        logical_ttl = ttl if ttl is not None else self.config.ttl
        entry = CacheEntry(
            key=key,
            value=value,
            status=status,
            created_at=previous.created_at if previous is not None else at,
            updated_at=at,
            expires_at=at + logical_ttl,
            metadata=metadata or {},
        )
        await self._write(entry, logical_ttl)
        return entry

    async def restore(self, key: str, entry: CacheEntry | None) -> None:
        """把某个键恢复为先前观察到的条目；`entry` 为 None 时删除该键。"""
        if entry is None:
            await self.invalidate(key)
            return
        if entry.status is CacheStatus.EXPIRED:
            entry = entry.model_copy(update={"status": CacheStatus.SUCCESS})
        if entry.expires_at is not None:
            remaining = max(1, int(entry.expires_at - now()))
        else:
            remaining = self.config.ttl
        await self._write(entry, remaining)
        logger.debug("缓存条目已恢复", key=key, status=entry.status.value)

    async def invalidate(self, key: str) -> None:
        await self.store.delete(key)
        await self.memory.delete(key)
        self._stats.invalidations += 1

    async def sweep(self) -> int:
        """清除内存层中所有已过期的条目，返回清除数量。"""
        at = now()
        removed = await self.memory.remove_where(lambda entry: entry.is_expired(at))
        self._stats.expired += removed
        if removed:
            logger.info("内存缓存清理完成", removed=removed, remaining=len(self.memory))
        return removed

    async def close(self) -> None:
        await self.store.close()

    async def _write(self, entry: CacheEntry, logical_ttl: int) -> None:
        store_ttl = logical_ttl
        if entry.status is CacheStatus.SUCCESS:
            store_ttl += self.config.stale_retention
        await self.store.put(entry.key, entry.model_dump_json().encode("utf-8"), store_ttl)
        await self.memory.set(entry)
        self._stats.writes += 1

    async def _read_store(self, key: str) -> CacheEntry | None:
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            self._stats.corrupt += 1
            logger.warning("缓存值反序列化失败，按未命中处理", key=key, error=str(e))
            return None

    @staticmethod
    def _is_expired_success(entry: CacheEntry, at: float) -> bool:
        return entry.status is CacheStatus.SUCCESS and entry.is_expired(at)

    def _status_view(self, entry: CacheEntry, at: float) -> CacheEntry:
        if self._is_expired_success(entry, at):
            return entry.model_copy(update={"status": CacheStatus.EXPIRED})
        if (
            entry.status is CacheStatus.PENDING
            and entry.age(at) > self.config.pending_staleness
        ):
            return entry.model_copy(
                update={
                    "status": CacheStatus.ERROR,
                    "metadata": {**entry.metadata, "stale_pending": True},
                }
            )
        return entry
