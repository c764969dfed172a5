# tests/unit/test_collector.py
"""针对 `pagetrans.collector` 的单元测试。"""

from pagetrans.collector import MAX_LENGTH_SCORE, ROLE_WEIGHTS, TextCollector
from pagetrans.config import CollectorConfig
from pagetrans.types import StructuralRole, TranslationContext
from tests.helpers.factories import ListDocument


def test_collects_only_translatable_nodes_in_priority_order() -> None:
    """标题、正文与 "<script>" 节点：标题排在正文之前，"<script>" 被过滤。"""
    document = ListDocument(
        [
            ("Welcome to the product documentation", StructuralRole.BODY),
            ("<script>", StructuralRole.BODY),
            ("Getting started guide for new users", StructuralRole.TITLE),
        ]
    )
    context = TranslationContext(target_lang="zh")

    items = list(TextCollector().collect(document, context))

    assert [item.raw_text for item in items] == [
        "Getting started guide for new users",
        "Welcome to the product documentation",
    ]
    assert items[0].priority_score > items[1].priority_score
    assert all(item.target_lang == "zh" and item.source_lang == "auto" for item in items)


def test_sequence_follows_document_order_and_ids_are_unique() -> None:
    document = ListDocument(["First paragraph text", "12345", "Second paragraph text"])
    items = list(TextCollector().collect(document, TranslationContext(target_lang="zh")))

    assert sorted(item.sequence for item in items) == [0, 1]
    by_sequence = {item.sequence: item for item in items}
    assert by_sequence[0].node_ref == 0
    assert by_sequence[1].node_ref == 2
    assert len({item.id for item in items}) == len(items)


def test_equal_priority_keeps_document_order() -> None:
    texts = [f"Paragraph number {n} of the page" for n in range(5)]
    items = list(
        TextCollector().collect(ListDocument(texts), TranslationContext(target_lang="zh"))
    )
    assert [item.raw_text for item in items] == texts


def test_collect_is_repeatable_and_does_not_mutate_document() -> None:
    document = ListDocument(["Hello there, friend", "Another sentence here"])
    collector = TextCollector()
    context = TranslationContext(target_lang="zh")

    first = [item.raw_text for item in collector.collect(document, context)]
    second = [item.raw_text for item in collector.collect(document, context)]

    assert first == second
    assert document.traversals == 2
    assert document.applied == {}


def test_returned_iterator_is_single_use() -> None:
    iterator = TextCollector().collect(
        ListDocument(["Some text to translate"]), TranslationContext(target_lang="zh")
    )
    assert len(list(iterator)) == 1
    assert list(iterator) == []


def test_text_is_stripped_before_filtering() -> None:
    items = list(
        TextCollector().collect(
            ListDocument(["   Padded sentence here   \n", "  \n  "]),
            TranslationContext(target_lang="zh"),
        )
    )
    assert [item.raw_text for item in items] == ["Padded sentence here"]


def test_role_weights_rank_structural_roles() -> None:
    assert (
        ROLE_WEIGHTS[StructuralRole.TITLE]
        > ROLE_WEIGHTS[StructuralRole.HEADING]
        > ROLE_WEIGHTS[StructuralRole.INTERACTIVE]
        > ROLE_WEIGHTS[StructuralRole.BODY]
        > ROLE_WEIGHTS[StructuralRole.ATTRIBUTE]
    )


def test_length_score_prefers_mid_length_text() -> None:
    collector = TextCollector(config=CollectorConfig(ideal_min_length=20, ideal_max_length=300))
    assert collector.length_score(100) == MAX_LENGTH_SCORE
    assert collector.length_score(5) < MAX_LENGTH_SCORE
    assert collector.length_score(3000) < MAX_LENGTH_SCORE


def test_keyword_boost_raises_priority() -> None:
    document = ListDocument(
        ["Read the release notes today", "Check out our pricing plans today"]
    )
    context = TranslationContext(target_lang="zh", keyword_boosts={"PRICING": 100})
    items = list(TextCollector().collect(document, context))
    assert items[0].raw_text == "Check out our pricing plans today"


def test_denied_roles_are_not_collected() -> None:
    document = ListDocument(
        [
            ("Open navigation menu", StructuralRole.ATTRIBUTE),
            ("Visible body text here", StructuralRole.BODY),
        ]
    )
    context = TranslationContext(
        target_lang="zh", denied_roles=frozenset({StructuralRole.ATTRIBUTE})
    )
    collector = TextCollector()
    items = list(collector.collect(document, context))

    assert [item.raw_text for item in items] == ["Visible body text here"]
    assert collector.stats.filtered_out == 1
    assert collector.stats.items_emitted == 1
    assert collector.stats.by_role["body"] == 1
