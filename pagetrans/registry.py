# pagetrans/registry.py
"""
在途任务注册表：保证同一个文档/语言对在同一时刻至多只有一个处理任务。

“检查并注册”在同一把锁下原子完成。非所有者成为等待者，
通过共享的 Future 获得所有者最终写入的缓存条目。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog

from pagetrans.exceptions import JobRegistryError
from pagetrans.types import CacheEntry
from pagetrans.utils import now

logger = structlog.get_logger(__name__)


class JobAbandonedError(JobRegistryError):
    """所有者任务被取消或被判定为陈旧，等待者应当重新发起请求。"""


@dataclass(eq=False)
class JobRecord:
    key: str
    started_at: float
    waiters: int = 0
    retired: bool = False
    owner: asyncio.Task[Any] | None = field(default=None, repr=False)
    future: asyncio.Future[CacheEntry] = field(
        default_factory=lambda: asyncio.get_running_loop().create_future(), repr=False
    )

    def age(self, at: float | None = None) -> float:
        return (at if at is not None else now()) - self.started_at

    def owner_alive(self) -> bool:
        """所有者协程是否仍在运行。没有记录所有者时视为已结束。"""
        return self.owner is not None and not self.owner.done()


class JobRegistry:
    """按缓存键索引的在途任务表。"""

    def __init__(self, staleness: float = 300.0):
        self.staleness = staleness
        self._jobs: dict[str, JobRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, key: str) -> bool:
        return key in self._jobs

    def is_active(self, key: str, at: float | None = None) -> bool:
        """该键是否有在途任务：未超过陈旧阈值，或所有者仍在运行。"""
        record = self._jobs.get(key)
        if record is None:
            return False
        return record.age(at) <= self.staleness or record.owner_alive()

    def get(self, key: str) -> JobRecord | None:
        return self._jobs.get(key)

    async def register(self, key: str) -> tuple[bool, JobRecord]:
        """
        原子地注册任务。

        返回 (是否为所有者, 任务记录)。已有存活任务时，调用方成为该任务的等待者。
        超过陈旧阈值的记录只有在其所有者已经结束时才会被取代。
        """
        async with self._lock:
            existing = self._jobs.get(key)
            if existing is not None:
                if existing.age() <= self.staleness or existing.owner_alive():
                    existing.waiters += 1
                    logger.debug("任务已在处理中，加入等待", key=key, waiters=existing.waiters)
                    return False, existing
                logger.warning(
                    "在途任务超过陈旧阈值，将被新任务取代",
                    key=key,
                    age=round(existing.age(), 1),
                )
                self._settle(existing, error=JobAbandonedError(f"任务 '{key}' 已陈旧"))

            record = JobRecord(key=key, started_at=now(), owner=asyncio.current_task())
            self._jobs[key] = record
            logger.debug("任务已注册", key=key)
            return True, record

    async def complete(self, record: JobRecord, entry: CacheEntry) -> None:
        """所有者成功结束任务，唤醒所有等待者。"""
        async with self._lock:
            self._remove(record)
            self._settle(record, entry=entry)

    async def fail(self, record: JobRecord, error: BaseException) -> None:
        """所有者以错误结束任务，等待者会收到同一个异常。"""
        async with self._lock:
            self._remove(record)
            self._settle(record, error=error)

    async def abandon(self, record: JobRecord) -> None:
        """所有者被取消。等待者收到 JobAbandonedError。"""
        await self.fail(record, JobAbandonedError(f"任务 '{record.key}' 已被取消"))

    async def wait(self, record: JobRecord) -> CacheEntry:
        """作为等待者等待任务结束。取消等待不会影响共享的 Future。"""
        try:
            return await asyncio.shield(record.future)
        finally:
            record.waiters = max(0, record.waiters - 1)

    def _remove(self, record: JobRecord) -> None:
        if record.retired:
            raise JobRegistryError(f"任务 '{record.key}' 已被注销，不能重复注销")
        record.retired = True
        # 已被新任务取代的记录不再拥有该键
        if self._jobs.get(record.key) is record:
            del self._jobs[record.key]

    @staticmethod
    def _settle(
        record: JobRecord,
        entry: CacheEntry | None = None,
        error: BaseException | None = None,
    ) -> None:
        if record.future.done():
            return
        if error is None:
            assert entry is not None
            record.future.set_result(entry)
        elif record.waiters:
            record.future.set_exception(error)
        else:
            record.future.cancel()
