# pagetrans/html.py
"""
基于 BeautifulSoup 的 HTML 文档适配器，实现 `TranslatableDocument` 协议。

遍历顺序为深度优先的文档顺序。`script`、`style`、`code` 等非内容元素整棵跳过；
元素上的 `title`、`alt`、`placeholder`、`aria-label` 属性作为 ATTRIBUTE 角色的文本产出。
回写时保留原文本节点首尾的空白。
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag

from pagetrans.types import StructuralRole, TextNode

SKIP_TAGS = frozenset(
    {"script", "style", "code", "pre", "noscript", "textarea", "svg", "template"}
)
TRANSLATABLE_ATTRS = ("title", "alt", "placeholder", "aria-label")
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
INTERACTIVE_TAGS = frozenset({"a", "button", "label", "option", "summary", "legend"})

_LEADING_WS = re.compile(r"^\s*")
_TRAILING_WS = re.compile(r"\s*$")


@dataclass(frozen=True, eq=False)
class AttributeRef:
    """指向某个元素上某个属性的回写句柄。"""

    element: Tag
    attribute: str


class HtmlDocument:
    """可遍历、可回写、可重新序列化的 HTML 文档。"""

    def __init__(self, html: str, document_id: str, parser: str = "html.parser"):
        self._soup = BeautifulSoup(html, parser)
        self._document_id = document_id

    @classmethod
    def from_file(cls, path: str | Path, document_id: str | None = None) -> HtmlDocument:
        file_path = Path(path)
        html = file_path.read_text(encoding="utf-8", errors="ignore")
        return cls(html, document_id or file_path.resolve().as_uri())

    @property
    def document_id(self) -> str:
        return self._document_id

    def iter_text_nodes(self) -> Iterator[TextNode]:
        return self._walk(self._soup, StructuralRole.BODY)

    def apply(self, node_ref: Any, text: str) -> None:
        if isinstance(node_ref, AttributeRef):
            node_ref.element[node_ref.attribute] = text
            return
        if isinstance(node_ref, NavigableString):
            raw = str(node_ref)
            lead = _LEADING_WS.match(raw).group(0)  # type: ignore[union-attr]
            trail = _TRAILING_WS.search(raw).group(0)  # type: ignore[union-attr]
            node_ref.replace_with(NavigableString(f"{lead}{text}{trail}"))
            return
        raise TypeError(f"不支持的节点句柄类型: {type(node_ref).__name__}")

    def render(self) -> str:
        return str(self._soup)

    def _walk(self, element: Tag, role: StructuralRole) -> Iterator[TextNode]:
        for child in list(element.children):
            if isinstance(child, Tag):
                if child.name in SKIP_TAGS:
                    continue
                yield from self._attribute_nodes(child)
                yield from self._walk(child, self._role_for(child, role))
            # Comment、Doctype 等都是 NavigableString 的子类，只处理纯文本节点
            elif type(child) is NavigableString and child.strip():
                yield TextNode(text=str(child), node_ref=child, role=role)

    @staticmethod
    def _attribute_nodes(element: Tag) -> Iterator[TextNode]:
        for attribute in TRANSLATABLE_ATTRS:
            value = element.get(attribute)
            if isinstance(value, str) and value.strip():
                yield TextNode(
                    text=value,
                    node_ref=AttributeRef(element, attribute),
                    role=StructuralRole.ATTRIBUTE,
                )

    @staticmethod
    def _role_for(element: Tag, inherited: StructuralRole) -> StructuralRole:
        if element.name == "title":
            return StructuralRole.TITLE
        if element.name in HEADING_TAGS:
            return StructuralRole.HEADING
        if element.name in INTERACTIVE_TAGS:
            return StructuralRole.INTERACTIVE
        return inherited
