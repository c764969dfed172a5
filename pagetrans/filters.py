# pagetrans/filters.py
"""
文本过滤链：一组纯函数式的谓词，判断一段文本是否值得翻译。

一段文本当且仅当被链上 *所有* 过滤器接受时才可翻译，因此过滤器之间
与顺序无关。新增过滤器只需实现 `TextFilter` 协议并通过 `FilterChain.add`
加入，无需修改已有过滤器。
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from pagetrans.config import FilterConfig
from pagetrans.types import StructuralRole, TranslationContext
from pagetrans.utils import primary_language


@dataclass(frozen=True)
class FilterContext:
    """单个候选文本的过滤上下文。"""

    target_lang: str
    role: StructuralRole = StructuralRole.BODY
    denied_roles: frozenset[StructuralRole] = frozenset()

    @classmethod
    def for_node(cls, context: TranslationContext, role: StructuralRole) -> FilterContext:
        return cls(
            target_lang=context.target_lang,
            role=role,
            denied_roles=context.denied_roles,
        )


class TextFilter(Protocol):
    name: str

    def accepts(self, text: str, context: FilterContext) -> bool: ...


class LengthFilter:
    """按去除首尾空白后的字符数过滤。"""

    name = "length"

    def __init__(self, min_length: int = 2, max_length: int = 10000):
        self.min_length = min_length
        self.max_length = max_length

    def accepts(self, text: str, context: FilterContext) -> bool:
        return self.min_length <= len(text.strip()) <= self.max_length


class AlphabeticFilter:
    """拒绝不含任何字母的文本（纯数字、纯符号）。"""

    name = "alphabetic"

    def accepts(self, text: str, context: FilterContext) -> bool:
        return any(ch.isalpha() for ch in text)


_URL_RE = re.compile(r"^(?:(?:https?|ftp)://|www\.)\S+$", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_MARKUP_RE = re.compile(r"</?[A-Za-z][^<>]*>")
_CSS_SELECTOR_RE = re.compile(r"^[.#][A-Za-z_][\w-]*(?:[\s>+~.#:\[\]=\"'\w-]*)$")
_SNAKE_CASE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*(?:_[A-Za-z0-9]+)+$")
_CAMEL_CASE_RE = re.compile(r"^[a-z]+(?:[A-Z][a-z0-9]+)+$")
_CALL_RE = re.compile(r"^[\w.$]+\([^()]*\);?$")
_CODE_CHARS = frozenset("{}[]();=<>/\\")


class PatternFilter:
    """拒绝看起来像 URL、邮箱、代码、标记、CSS 选择器或程序标识符的文本。"""

    name = "pattern"

    def __init__(self, special_char_threshold: float = 0.33):
        self.special_char_threshold = special_char_threshold

    def accepts(self, text: str, context: FilterContext) -> bool:
        stripped = text.strip()
        if not stripped:
            return False
        return not (
            self.is_url(stripped)
            or self.is_email(stripped)
            or self.is_markup(stripped)
            or self.is_css_selector(stripped)
            or self.is_identifier(stripped)
            or self.is_code_like(stripped)
        )

    @staticmethod
    def is_url(text: str) -> bool:
        return bool(_URL_RE.match(text))

    @staticmethod
    def is_email(text: str) -> bool:
        return len(text) <= 100 and bool(_EMAIL_RE.match(text))

    @staticmethod
    def is_markup(text: str) -> bool:
        return bool(_MARKUP_RE.search(text))

    @staticmethod
    def is_css_selector(text: str) -> bool:
        return "::" in text or bool(_CSS_SELECTOR_RE.match(text))

    @staticmethod
    def is_identifier(text: str) -> bool:
        if " " in text:
            return False
        return bool(
            _SNAKE_CASE_RE.match(text) or _CAMEL_CASE_RE.match(text) or _CALL_RE.match(text)
        )

    def is_code_like(self, text: str) -> bool:
        special = sum(1 for ch in text if ch in _CODE_CHARS)
        return special > len(text) * self.special_char_threshold


class FunctionalWordFilter:
    """拒绝 "ok"、"yes" 这类很短的功能性词汇。"""

    name = "functional_word"

    def __init__(self, words: Iterable[str], max_length: int = 3):
        self.words = frozenset(w.lower() for w in words)
        self.max_length = max_length

    def accepts(self, text: str, context: FilterContext) -> bool:
        stripped = text.strip()
        return not (len(stripped) <= self.max_length and stripped.lower() in self.words)


# 目标语言主标签 -> 其书写系统的 Unicode 区间
_SCRIPT_RANGES: dict[str, tuple[tuple[int, int], ...]] = {
    "zh": ((0x4E00, 0x9FFF), (0x3400, 0x4DBF)),
    "ja": ((0x3040, 0x309F), (0x30A0, 0x30FF), (0x4E00, 0x9FFF)),
    "ko": ((0xAC00, 0xD7AF), (0x1100, 0x11FF), (0x3130, 0x318F)),
    "ru": ((0x0400, 0x04FF),),
    "uk": ((0x0400, 0x04FF),),
    "bg": ((0x0400, 0x04FF),),
    "ar": ((0x0600, 0x06FF),),
    "fa": ((0x0600, 0x06FF),),
    "he": ((0x0590, 0x05FF),),
    "el": ((0x0370, 0x03FF),),
    "th": ((0x0E00, 0x0E7F),),
    "hi": ((0x0900, 0x097F),),
}


class TargetLanguageFilter:
    """
    拒绝已经是目标语言的文本。

    基于书写系统比例的启发式判断：目标语言字符占非空白字符的比例超过阈值即视为
    已是目标语言。对拉丁字母等无法通过书写系统区分的目标语言一律放行。
    """

    name = "target_language"

    def __init__(self, threshold: float = 0.5):
        self.threshold = threshold

    def accepts(self, text: str, context: FilterContext) -> bool:
        return self.target_script_ratio(text, context.target_lang) <= self.threshold

    @staticmethod
    def target_script_ratio(text: str, target_lang: str) -> float:
        ranges = _SCRIPT_RANGES.get(primary_language(target_lang))
        if not ranges:
            return 0.0
        chars = [ch for ch in text if not ch.isspace()]
        if not chars:
            return 0.0
        hits = sum(1 for ch in chars if any(lo <= ord(ch) <= hi for lo, hi in ranges))
        return hits / len(chars)


class StructuralContextFilter:
    """拒绝调用方在上下文中声明为禁止翻译的结构角色（例如属性文本）。"""

    name = "structural_context"

    def accepts(self, text: str, context: FilterContext) -> bool:
        return context.role not in context.denied_roles


@dataclass
class FilterStats:
    total: int = 0
    accepted: int = 0
    rejected_by: Counter[str] = field(default_factory=Counter)

    @property
    def rejected(self) -> int:
        return self.total - self.accepted


class FilterChain:
    """过滤器的合取组合。"""

    def __init__(self, filters: Iterable[TextFilter] = ()):
        self._filters: list[TextFilter] = list(filters)
        self.stats = FilterStats()

    @classmethod
    def from_config(cls, config: FilterConfig | None = None) -> FilterChain:
        """按配置构造包含全部内置过滤器的过滤链。"""
        config = config or FilterConfig()
        return cls(
            [
                LengthFilter(config.min_length, config.max_length),
                AlphabeticFilter(),
                PatternFilter(config.special_char_threshold),
                FunctionalWordFilter(config.functional_words, config.functional_max_length),
                TargetLanguageFilter(config.script_threshold),
                StructuralContextFilter(),
            ]
        )

    @property
    def filters(self) -> tuple[TextFilter, ...]:
        return tuple(self._filters)

    def add(self, text_filter: TextFilter) -> FilterChain:
        self._filters.append(text_filter)
        return self

    def should_translate(self, text: str, context: FilterContext) -> bool:
        return all(f.accepts(text, context) for f in self._filters)

    def explain(self, text: str, context: FilterContext) -> list[str]:
        """返回拒绝该文本的所有过滤器名称；空列表表示可翻译。"""
        return [f.name for f in self._filters if not f.accepts(text, context)]

    def check(self, text: str, context: FilterContext) -> bool:
        """与 `should_translate` 相同，但同时累计过滤统计。"""
        rejected = self.explain(text, context)
        self.stats.total += 1
        if rejected:
            self.stats.rejected_by.update(rejected)
            return False
        self.stats.accepted += 1
        return True
