# tests/unit/test_batch.py
"""针对 `pagetrans.batch` 的单元测试：分批边界与自适应预算。"""

import pytest

from pagetrans.batch import AdaptiveBatchSizer, BatchBuilder, build_batches
from pagetrans.config import BatchConfig
from tests.helpers.factories import make_items


@pytest.fixture
def config() -> BatchConfig:
    return BatchConfig(
        max_chars_per_batch=9000,
        min_chars_per_batch=2000,
        max_items_per_batch=100,
        decay_factor=0.5,
        growth_factor=1.25,
        growth_after=3,
        latency_threshold=10.0,
    )


def test_splits_on_char_budget(config: BatchConfig) -> None:
    """5000、5000、100 字符的文本项在 9000 预算下分为 [1] 与 [2, 3]。"""
    items = make_items([5000, 5000, 100])
    batches = build_batches(items, config)

    assert [[i.sequence for i in b.items] for b in batches] == [[0], [1, 2]]
    assert [b.char_weight for b in batches] == [5000, 5100]


def test_oversized_item_gets_its_own_batch(config: BatchConfig) -> None:
    items = make_items([100, 12000, 100])
    batches = build_batches(items, config)

    assert [[i.sequence for i in b.items] for b in batches] == [[0], [1], [2]]
    assert batches[1].is_oversized_single
    assert batches[1].char_weight > config.max_chars_per_batch


def test_item_cap_is_respected() -> None:
    config = BatchConfig(max_items_per_batch=3, min_chars_per_batch=1, max_chars_per_batch=9000)
    batches = build_batches(make_items([10] * 7), config)
    assert [len(b.items) for b in batches] == [3, 3, 1]


def test_batches_preserve_order_and_budget(config: BatchConfig) -> None:
    lengths = [1200, 3400, 800, 4100, 2600, 90, 7000, 30, 5000, 5000]
    items = make_items(lengths)
    batches = build_batches(items, config)

    flattened = [i.sequence for b in batches for i in b.items]
    assert flattened == list(range(len(lengths)))
    for batch in batches:
        assert batch.char_weight <= config.max_chars_per_batch or len(batch.items) == 1
        assert len(batch.items) <= config.max_items_per_batch


def test_empty_input_yields_no_batches(config: BatchConfig) -> None:
    assert build_batches([], config) == []


def test_explicit_budget_overrides_max(config: BatchConfig) -> None:
    batches = build_batches(make_items([1500, 1500, 1500]), config, budget=3000)
    assert [len(b.items) for b in batches] == [2, 1]


def test_sizer_shrinks_on_high_latency_and_failures(config: BatchConfig) -> None:
    sizer = AdaptiveBatchSizer(config)
    assert sizer.budget == 9000

    sizer.record(latency=12.0)
    assert sizer.budget == 4500
    sizer.record(latency=0.5, failed_items=1)
    assert sizer.budget == 2250
    sizer.record(latency=20.0)
    assert sizer.budget == config.min_chars_per_batch


def test_sizer_grows_after_healthy_streak(config: BatchConfig) -> None:
    sizer = AdaptiveBatchSizer(config)
    sizer.record(latency=30.0)
    assert sizer.budget == 4500

    sizer.record(latency=0.1)
    sizer.record(latency=0.1)
    assert sizer.budget == 4500
    sizer.record(latency=0.1)
    assert sizer.budget == 5625

    for _ in range(30):
        sizer.record(latency=0.1)
    assert sizer.budget == config.max_chars_per_batch


def test_failure_resets_healthy_streak(config: BatchConfig) -> None:
    sizer = AdaptiveBatchSizer(config)
    sizer.record(latency=30.0)
    sizer.record(latency=0.1)
    sizer.record(latency=0.1)
    sizer.record(latency=0.1, failed_items=2)
    assert sizer.budget == 2250
    sizer.reset()
    assert sizer.budget == 9000


def test_builder_uses_adaptive_budget_and_monotonic_ids(config: BatchConfig) -> None:
    builder = BatchBuilder(config)
    first = builder.build_batches(make_items([4000, 4000, 4000]))
    assert [len(b.items) for b in first] == [2, 1]

    builder.sizer.record(latency=60.0)
    second = builder.build_batches(make_items([4000, 4000]))
    assert [len(b.items) for b in second] == [1, 1]

    ids = [b.batch_id for b in first + second]
    assert ids == sorted(set(ids))
