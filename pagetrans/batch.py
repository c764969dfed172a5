# pagetrans/batch.py
"""
批次构建器：把文本项按字符预算与条目上限分组为网络调用批次。

构建器不会跨批次按优先级重排，收集器给出的顺序在批次内和批次间都得到保留。
批次预算是自适应的：最近的批次出现高延迟或部分失败时按衰减因子收缩，
持续成功后再逐步恢复，始终处于配置的上下界之间。
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable

import structlog

from pagetrans.config import BatchConfig
from pagetrans.types import Batch, TextItem

logger = structlog.get_logger(__name__)


class AdaptiveBatchSizer:
    """根据批次执行反馈调整下一批次的字符预算。"""

    def __init__(self, config: BatchConfig):
        self.config = config
        self._budget = config.max_chars_per_batch
        self._healthy_streak = 0

    @property
    def budget(self) -> int:
        return self._budget

    def record(self, latency: float, failed_items: int = 0) -> None:
        """记录一个已完成批次的耗时与失败条目数。"""
        if latency > self.config.latency_threshold or failed_items > 0:
            self._healthy_streak = 0
            shrunk = max(
                self.config.min_chars_per_batch,
                int(self._budget * self.config.decay_factor),
            )
            if shrunk != self._budget:
                logger.info(
                    "批次预算收缩",
                    previous=self._budget,
                    current=shrunk,
                    latency=round(latency, 3),
                    failed_items=failed_items,
                )
            self._budget = shrunk
            return

        self._healthy_streak += 1
        if self._healthy_streak >= self.config.growth_after:
            self._healthy_streak = 0
            grown = min(
                self.config.max_chars_per_batch,
                int(self._budget * self.config.growth_factor),
            )
            if grown != self._budget:
                logger.debug("批次预算恢复", previous=self._budget, current=grown)
            self._budget = grown

    def reset(self) -> None:
        self._budget = self.config.max_chars_per_batch
        self._healthy_streak = 0


def build_batches(
    items: Iterable[TextItem],
    config: BatchConfig,
    *,
    budget: int | None = None,
    start_id: int = 0,
) -> list[Batch]:
    """
    按输入顺序贪心地构建批次。

    每个批次的字符总量不超过 `budget`（缺省为 `max_chars_per_batch`），
    条目数不超过 `max_items_per_batch`。单个超出预算的文本项独占一个批次，而不会被丢弃。
    """
    char_budget = budget if budget is not None else config.max_chars_per_batch
    ids = itertools.count(start_id)
    batches: list[Batch] = []
    current: list[TextItem] = []
    current_weight = 0

    def flush() -> None:
        nonlocal current, current_weight
        if current:
            batches.append(Batch(batch_id=next(ids), items=current))
            current, current_weight = [], 0

    for item in items:
        weight = item.char_weight
        if weight > char_budget:
            flush()
            logger.debug("超大文本项独占一个批次", item_id=item.id, chars=weight)
            batches.append(Batch(batch_id=next(ids), items=[item]))
            continue
        if current and (
            current_weight + weight > char_budget
            or len(current) >= config.max_items_per_batch
        ):
            flush()
        current.append(item)
        current_weight += weight

    flush()
    return batches


class BatchBuilder:
    """持有自适应预算的批次构建器，批次编号在构建器生命周期内单调递增。"""

    def __init__(self, config: BatchConfig, sizer: AdaptiveBatchSizer | None = None):
        self.config = config
        self.sizer = sizer or AdaptiveBatchSizer(config)
        self._next_id = 0

    def build_batches(self, items: Iterable[TextItem]) -> list[Batch]:
        batches = build_batches(
            items, self.config, budget=self.sizer.budget, start_id=self._next_id
        )
        self._next_id += len(batches)
        logger.debug("批次构建完成", batches=len(batches), budget=self.sizer.budget)
        return batches
