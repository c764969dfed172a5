# pagetrans/collector.py
"""
文本收集器：遍历外部提供的文档，应用过滤链，产出带优先级的可翻译文本项。

收集器把文档视为只读能力，只记录节点句柄，不修改文档本身。
优先级由三部分组成：
1. 长度分：中等长度最高，过短或过长递减；
2. 结构角色分：标题 > 小标题 > 交互元素 > 正文 > 属性；
3. 调用方提供的关键字加成。
同优先级的文本项保持文档顺序（稳定排序），以保证后续回写的确定性。
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field

import structlog

from pagetrans.config import CollectorConfig
from pagetrans.filters import FilterChain, FilterContext
from pagetrans.interfaces import TranslatableDocument
from pagetrans.types import StructuralRole, TextItem, TranslationContext

logger = structlog.get_logger(__name__)

ROLE_WEIGHTS: dict[StructuralRole, int] = {
    StructuralRole.TITLE: 50,
    StructuralRole.HEADING: 40,
    StructuralRole.INTERACTIVE: 30,
    StructuralRole.BODY: 20,
    StructuralRole.ATTRIBUTE: 10,
}
MAX_LENGTH_SCORE = 20
MIN_LENGTH_SCORE = 2


@dataclass
class CollectionStats:
    nodes_visited: int = 0
    items_emitted: int = 0
    filtered_out: int = 0
    by_role: Counter[str] = field(default_factory=Counter)


class TextCollector:
    """从文档中收集可翻译文本项。"""

    def __init__(
        self,
        filter_chain: FilterChain | None = None,
        config: CollectorConfig | None = None,
    ):
        self.filter_chain = filter_chain or FilterChain.from_config()
        self.config = config or CollectorConfig()
        self.stats = CollectionStats()

    def collect(
        self, document: TranslatableDocument, context: TranslationContext
    ) -> Iterator[TextItem]:
        """
        对文档执行一次完整的深度优先收集。

        返回的迭代器是一次性的；再次调用 `collect` 会重新遍历文档并得到相同的结果。
        """
        items = list(self._scan(document, context))
        # list.sort 是稳定排序，同分项保持文档顺序
        items.sort(key=lambda item: -item.priority_score)
        logger.debug(
            "文本收集完成",
            document_id=document.document_id,
            items=len(items),
            filtered_out=self.stats.filtered_out,
        )
        return iter(items)

    def _scan(
        self, document: TranslatableDocument, context: TranslationContext
    ) -> Iterator[TextItem]:
        sequence = 0
        for node in document.iter_text_nodes():
            self.stats.nodes_visited += 1
            text = node.text.strip()
            if not text:
                continue
            filter_context = FilterContext.for_node(context, node.role)
            if not self.filter_chain.check(text, filter_context):
                self.stats.filtered_out += 1
                continue

            self.stats.items_emitted += 1
            self.stats.by_role[node.role.value] += 1
            yield TextItem(
                id=f"{document.document_id}#{sequence}",
                raw_text=text,
                node_ref=node.node_ref,
                priority_score=self.score(text, node.role, context),
                source_lang=context.source_lang,
                target_lang=context.target_lang,
                role=node.role,
                sequence=sequence,
            )
            sequence += 1

    def score(self, text: str, role: StructuralRole, context: TranslationContext) -> int:
        """计算文本项的整数优先级。"""
        return (
            self.length_score(len(text))
            + ROLE_WEIGHTS[role]
            + self.keyword_boost(text, context.keyword_boosts)
        )

    def length_score(self, length: int) -> int:
        low, high = self.config.ideal_min_length, self.config.ideal_max_length
        if low <= length <= high:
            return MAX_LENGTH_SCORE
        if length < low:
            return max(MIN_LENGTH_SCORE, MAX_LENGTH_SCORE * length // max(low, 1))
        return max(MIN_LENGTH_SCORE, MAX_LENGTH_SCORE * high // length)

    @staticmethod
    def keyword_boost(text: str, boosts: dict[str, int]) -> int:
        lowered = text.lower()
        return sum(boost for keyword, boost in boosts.items() if keyword.lower() in lowered)
