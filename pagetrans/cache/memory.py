# pagetrans/cache/memory.py
"""本模块提供缓存的内存层：一个由 asyncio.Lock 保护的 LRU 缓存。"""

import asyncio
from collections.abc import Callable
from typing import Any

from cachetools import Cache, LRUCache

from pagetrans.types import CacheEntry


class _CountingLRUCache(LRUCache):
    """记录淘汰次数的 LRUCache。"""

    def __init__(self, maxsize: int):
        super().__init__(maxsize=maxsize)
        self.evictions = 0

    def popitem(self) -> tuple[Any, Any]:
        item = super().popitem()
        self.evictions += 1
        return item


class MemoryTier:
    """进程内的缓存层，所有读写都在同一把锁下进行。"""

    def __init__(self, maxsize: int = 1000):
        self._cache: _CountingLRUCache = _CountingLRUCache(maxsize)
        self._lock = asyncio.Lock()

    @property
    def evictions(self) -> int:
        return self._cache.evictions

    @property
    def maxsize(self) -> int:
        return int(self._cache.maxsize)

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> CacheEntry | None:
        """读取条目并刷新其 LRU 位置。"""
        async with self._lock:
            return self._cache.get(key)

    async def peek(self, key: str) -> CacheEntry | None:
        """读取条目，不改变 LRU 顺序。"""
        async with self._lock:
            if key not in self._cache:
                return None
            # 绕过 LRUCache.__getitem__，避免更新访问顺序
            return Cache.__getitem__(self._cache, key)

    async def set(self, entry: CacheEntry) -> None:
        async with self._lock:
            self._cache[entry.key] = entry

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._cache.pop(key, None) is not None

    async def remove_where(self, predicate: Callable[[CacheEntry], bool]) -> int:
        """删除所有满足条件的条目，返回删除数量。"""
        async with self._lock:
            doomed = [
                key
                for key in list(self._cache.keys())
                if predicate(Cache.__getitem__(self._cache, key))
            ]
            for key in doomed:
                del self._cache[key]
            return len(doomed)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()
