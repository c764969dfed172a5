# pagetrans/types.py
"""
本模块定义了 pagetrans 系统的核心数据类型。

所有状态都以封闭的枚举表示，而不是自由格式的字符串，
以便路由决策引擎的分支可以被穷尽地检查。
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from pagetrans.utils import AUTO_LANG, now


class StructuralRole(str, Enum):
    """文本在文档结构中的角色，决定了优先级权重。"""

    TITLE = "title"
    HEADING = "heading"
    INTERACTIVE = "interactive"
    BODY = "body"
    ATTRIBUTE = "attribute"


class TextNode(BaseModel):
    """文档协作方在遍历时产出的一个含文本节点。`node_ref` 是不透明的回写句柄。"""

    model_config = ConfigDict(frozen=True)

    text: str
    node_ref: Any
    role: StructuralRole = StructuralRole.BODY


class TranslationContext(BaseModel):
    """
    一次收集/翻译所需的调用方上下文。

    `denied_roles` 由调用方指定不应翻译的结构角色（例如属性文本），
    `keyword_boosts` 为包含特定关键字的文本追加优先级加成。
    """

    model_config = ConfigDict(frozen=True)

    source_lang: str = AUTO_LANG
    target_lang: str
    denied_roles: frozenset[StructuralRole] = frozenset()
    keyword_boosts: dict[str, int] = Field(default_factory=dict)


class TextItem(BaseModel):
    """由收集器创建的、不可变的可翻译文本单元。"""

    model_config = ConfigDict(frozen=True)

    id: str
    raw_text: str
    node_ref: Any
    priority_score: int
    source_lang: str
    target_lang: str
    role: StructuralRole = StructuralRole.BODY
    sequence: int = Field(ge=0, description="文档顺序中的位置，用于确定性回写")

    @property
    def char_weight(self) -> int:
        return len(self.raw_text)


class Batch(BaseModel):
    """一次网络调用中一起提交的一组文本项。"""

    batch_id: int
    items: list[TextItem]
    created_at: float = Field(default_factory=now)

    @property
    def char_weight(self) -> int:
        return sum(item.char_weight for item in self.items)

    @property
    def is_oversized_single(self) -> bool:
        return len(self.items) == 1


class EngineSuccess(BaseModel):
    """代表从翻译引擎成功返回的单条翻译结果。"""

    translated_text: str
    from_cache: bool = False


class EngineError(BaseModel):
    """代表单条失败结果，并指明是否可重试。"""

    error_message: str
    is_retryable: bool


ItemResult = Union[EngineSuccess, EngineError]


class CacheStatus(str, Enum):
    """缓存条目在其生命周期中的状态。EXPIRED 只会在读取时被报告，从不被写入。"""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    EXPIRED = "expired"


class CacheEntry(BaseModel):
    """缓存条目。一经创建即不可变，状态迁移通过 `model_copy` 产生新条目。"""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str | None = None
    status: CacheStatus
    created_at: float
    updated_at: float
    expires_at: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_expired(self, at: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (at if at is not None else now()) > self.expires_at

    def age(self, at: float | None = None) -> float:
        return (at if at is not None else now()) - self.updated_at


class DocumentArtifact(BaseModel):
    """整篇文档翻译产物的统计信息，存放在文档缓存条目的 metadata 中。"""

    document_id: str
    total_items: int = 0
    translated_items: int = 0
    cached_items: int = 0
    failed_items: int = 0

    @property
    def partial(self) -> bool:
        return self.failed_items > 0

    @property
    def has_usable_content(self) -> bool:
        """没有任何待翻译文本，或至少一条翻译成功时，产物即为可用。"""
        return self.total_items == 0 or self.translated_items + self.cached_items > 0


class RoutingStatus(str, Enum):
    COMPLETE = "complete"
    PROCESSING = "processing"
    EXPIRED = "expired"
    FAILED = "failed"
    NOT_FOUND = "not_found"


class ArtifactRef(BaseModel):
    """指向一条缓存产物的引用。"""

    model_config = ConfigDict(frozen=True)

    key: str
    entry: CacheEntry


class UseCache(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["use_cache"] = "use_cache"
    artifact_ref: ArtifactRef


class WaitForProcessing(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["wait_for_processing"] = "wait_for_processing"


class ReprocessWithCheck(BaseModel):
    """产物已过期。调用方可以先返回 `stale_ref` 再后台刷新，也可以强制刷新。"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["reprocess_with_check"] = "reprocess_with_check"
    stale_ref: ArtifactRef


class FullReprocess(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["full_reprocess"] = "full_reprocess"


RoutingStrategy = Annotated[
    Union[UseCache, WaitForProcessing, ReprocessWithCheck, FullReprocess],
    Field(discriminator="kind"),
]


class RoutingDecision(BaseModel):
    """路由决策：缓存状态与任务注册表状态在查询时刻的纯函数。"""

    model_config = ConfigDict(frozen=True)

    key: str
    status: RoutingStatus
    strategy: RoutingStrategy
