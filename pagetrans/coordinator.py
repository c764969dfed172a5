# pagetrans/coordinator.py
"""
本模块包含 pagetrans 的主协调器。

一次完整的文档任务：
1. 在任务注册表中原子登记（非所有者成为等待者）；
2. 写入 PENDING；
3. 收集 -> 文本缓存查询 -> 任务内去重 -> 分批 -> 并发翻译 -> 文本缓存回写；
4. 按文档顺序回写译文（失败条目保留原文）并重新序列化；
5. 写入 SUCCESS（无任何可用译文时写入 ERROR），并注销任务。
取消或致命错误时，缓存会被恢复到任务开始前的状态。
"""

import asyncio
from typing import Any

import structlog

from pagetrans.batch import AdaptiveBatchSizer, BatchBuilder
from pagetrans.cache.keys import document_key, text_key
from pagetrans.cache.stores import create_store
from pagetrans.cache.tiered import TieredCache
from pagetrans.client import ThrottleResources, TranslationClient
from pagetrans.collector import TextCollector
from pagetrans.config import PageTransConfig
from pagetrans.engine_registry import create_engine
from pagetrans.engines.base import BaseTranslationEngine
from pagetrans.filters import FilterChain
from pagetrans.interfaces import PersistentStore, TranslatableDocument
from pagetrans.registry import JobAbandonedError, JobRecord, JobRegistry
from pagetrans.routing import RoutingEngine
from pagetrans.types import (
    CacheEntry,
    CacheStatus,
    DocumentArtifact,
    EngineSuccess,
    RoutingDecision,
    TextItem,
    TranslationContext,
)

logger = structlog.get_logger(__name__)


class Coordinator:
    """异步主协调器，串联收集、分批、翻译、缓存与路由。"""

    def __init__(
        self,
        config: PageTransConfig,
        engine: BaseTranslationEngine[Any] | None = None,
        store: PersistentStore | None = None,
        throttle: ThrottleResources | None = None,
    ):
        self.config = config
        self.initialized = False
        self._engine = engine
        self._store = store
        self._shutting_down = False
        self._active_tasks: set[asyncio.Task[Any]] = set()
        self._sweep_task: asyncio.Task[None] | None = None

        self.throttle = throttle or ThrottleResources.from_config(config.throttle)
        self.registry = JobRegistry(staleness=config.cache.pending_staleness)
        self.sizer = AdaptiveBatchSizer(config.batch)
        self.batch_builder = BatchBuilder(config.batch, self.sizer)
        self.filter_chain = FilterChain.from_config(config.filters)
        self._cache: TieredCache | None = None
        self._client: TranslationClient | None = None
        self._routing: RoutingEngine | None = None

    @property
    def engine(self) -> BaseTranslationEngine[Any]:
        self._ensure_initialized()
        assert self._engine is not None
        return self._engine

    @property
    def cache(self) -> TieredCache:
        self._ensure_initialized()
        assert self._cache is not None
        return self._cache

    @property
    def client(self) -> TranslationClient:
        self._ensure_initialized()
        assert self._client is not None
        return self._client

    async def initialize(self) -> None:
        """初始化协调器：创建引擎与持久层，并按需启动周期清理。"""
        if self.initialized:
            return
        logger.info("协调器初始化开始...")
        if self._engine is None:
            self._engine = create_engine(
                self.config.active_engine.value, self.config.engine_configs
            )
        if not self._engine.initialized:
            await self._engine.initialize()
        if self._store is None:
            self._store = await create_store(self.config.cache)

        self._cache = TieredCache(self._store, self.config.cache)
        self._client = TranslationClient(
            self._engine,
            self.throttle,
            throttle_config=self.config.throttle,
            retry_policy=self.config.retry_policy,
            sizer=self.sizer,
        )
        self._routing = RoutingEngine(self._cache, self.registry)
        if self.config.cache.sweep_interval:
            self._sweep_task = asyncio.create_task(
                self._sweep_loop(self.config.cache.sweep_interval)
            )

        self.initialized = True
        logger.info("协调器初始化完成", engine=self._engine.name)

    async def close(self) -> None:
        """优雅地关闭协调器：取消在途任务，关闭引擎与持久层。"""
        if self._shutting_down or not self.initialized:
            return
        logger.info("开始优雅停机...")
        self._shutting_down = True

        tasks = list(self._active_tasks)
        if self._sweep_task is not None:
            tasks.append(self._sweep_task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        assert self._engine is not None and self._cache is not None
        await self._engine.close()
        await self._cache.close()
        self.initialized = False
        self._shutting_down = False
        logger.info("优雅停机完成。")

    def document_key(
        self,
        document_id: str,
        source_lang: str | None = None,
        target_lang: str | None = None,
    ) -> str:
        return document_key(
            document_id,
            source_lang or self.config.default_source_lang,
            target_lang or self.config.default_target_lang,
        )

    async def decide(self, key: str) -> RoutingDecision:
        self._ensure_initialized()
        assert self._routing is not None
        return await self._routing.decide(key)

    async def run_job(
        self,
        document: TranslatableDocument,
        context: TranslationContext,
        key: str | None = None,
    ) -> CacheEntry:
        """
        翻译整篇文档并写入缓存，返回最终的缓存条目。

        同一个键上的并发调用只会触发一次处理，其余调用等待并获得同一个条目。
        """
        self._ensure_initialized()
        key = key or self.document_key(
            document.document_id, context.source_lang, context.target_lang
        )

        while True:
            is_owner, record = await self.registry.register(key)
            if is_owner:
                break
            try:
                return await self.registry.wait(record)
            except JobAbandonedError:
                logger.info("等待的任务已被放弃，重新发起", key=key)

        task = asyncio.current_task()
        if task is not None:
            self._active_tasks.add(task)
        try:
            return await self._run_owned(record, document, context)
        finally:
            if task is not None:
                self._active_tasks.discard(task)

    async def _run_owned(
        self,
        record: JobRecord,
        document: TranslatableDocument,
        context: TranslationContext,
    ) -> CacheEntry:
        key = record.key
        previous: CacheEntry | None = None
        pending_written = False
        try:
            previous = await self.cache.lookup(key)
            pending_written = True
            await self.cache.put(
                key,
                None,
                CacheStatus.PENDING,
                metadata={"document_id": document.document_id},
            )
            entry = await self._process(key, document, context)
        except asyncio.CancelledError:
            logger.warning("任务被取消，恢复缓存状态", key=key)
            try:
                if pending_written:
                    await self.cache.restore(key, previous)
            finally:
                await self.registry.abandon(record)
            raise
        except Exception as e:
            logger.error("任务失败，恢复缓存状态", key=key, exc_info=True)
            try:
                if pending_written:
                    await self.cache.restore(key, previous)
            finally:
                await self.registry.fail(record, e)
            raise

        await self.registry.complete(record, entry)
        return entry

    async def _process(
        self, key: str, document: TranslatableDocument, context: TranslationContext
    ) -> CacheEntry:
        collector = TextCollector(self.filter_chain, self.config.collector)
        items = list(collector.collect(document, context))
        artifact = DocumentArtifact(document_id=document.document_id, total_items=len(items))

        # 同一文本在任务内只翻译一次，结果分发给所有携带该文本的节点
        groups: dict[str, list[TextItem]] = {}
        for item in items:
            tkey = text_key(item.raw_text, item.source_lang, item.target_lang)
            groups.setdefault(tkey, []).append(item)

        translations: dict[int, str] = {}
        representatives: list[TextItem] = []
        for tkey, group in groups.items():
            cached = await self.cache.get(tkey)
            if cached is not None and cached.status is CacheStatus.SUCCESS and cached.value:
                for item in group:
                    translations[item.sequence] = cached.value
                artifact.cached_items += len(group)
            else:
                representatives.append(group[0])

        batches = self.batch_builder.build_batches(representatives)
        logger.info(
            "文档任务开始翻译",
            key=key,
            items=len(items),
            unique_texts=len(groups),
            cached=artifact.cached_items,
            batches=len(batches),
        )
        batch_results = await asyncio.gather(*(self.client.translate(b) for b in batches))

        write_backs = []
        for batch, results in zip(batches, batch_results):
            for item, result in zip(batch.items, results):
                tkey = text_key(item.raw_text, item.source_lang, item.target_lang)
                group = groups[tkey]
                if isinstance(result, EngineSuccess):
                    for member in group:
                        translations[member.sequence] = result.translated_text
                    artifact.translated_items += len(group)
                    write_backs.append(
                        self.cache.put(
                            tkey,
                            result.translated_text,
                            CacheStatus.SUCCESS,
                            ttl=self.config.cache.text_ttl,
                        )
                    )
                else:
                    artifact.failed_items += len(group)
                    logger.warning(
                        "文本翻译失败，保留原文", item_id=item.id, error=result.error_message
                    )
        await asyncio.gather(*write_backs)

        for item in sorted(items, key=lambda i: i.sequence):
            translated = translations.get(item.sequence)
            if translated is not None:
                document.apply(item.node_ref, translated)

        metadata = {**artifact.model_dump(), "partial": artifact.partial}
        if artifact.has_usable_content:
            entry = await self.cache.put(
                key,
                document.render(),
                CacheStatus.SUCCESS,
                ttl=self.config.cache.ttl,
                metadata=metadata,
            )
        else:
            entry = await self.cache.put(key, None, CacheStatus.ERROR, metadata=metadata)

        log = logger.warning if artifact.partial else logger.info
        log(
            "文档任务完成",
            key=key,
            status=entry.status.value,
            translated=artifact.translated_items,
            cached=artifact.cached_items,
            failed=artifact.failed_items,
        )
        return entry

    async def sweep(self) -> int:
        return await self.cache.sweep()

    async def invalidate(self, key: str) -> None:
        await self.cache.invalidate(key)

    def stats(self) -> dict[str, Any]:
        """收集各组件的运行统计。"""
        self._ensure_initialized()
        return {
            "cache": self.cache.stats.as_dict(),
            "client": {
                "requests": self.client.stats.requests,
                "retries": self.client.stats.retries,
                "timeouts": self.client.stats.timeouts,
                "split_batches": self.client.stats.split_batches,
                "failed_items": self.client.stats.failed_items,
            },
            "throttle": {
                "throttled": self.client.throttle.rate_limiter.throttled,
                "wait_seconds": round(self.client.throttle.rate_limiter.total_wait_time, 3),
            },
            "filters": {
                "total": self.filter_chain.stats.total,
                "accepted": self.filter_chain.stats.accepted,
                "rejected_by": dict(self.filter_chain.stats.rejected_by),
            },
            "batch_budget": self.sizer.budget,
            "active_jobs": len(self.registry),
        }

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.cache.sweep()
            except Exception:
                logger.error("周期缓存清理失败", exc_info=True)

    def _ensure_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError("Coordinator is not initialized.")
