# pagetrans/engines/base.py
"""
本模块定义了所有翻译引擎插件必须继承的抽象基类（ABC）。

引擎只负责“提交 N 条文本，得到 N 条结果”这一件事：
- 整批失败（超时、连接失败、非成功状态码、限流）以 `TransportError` /
  `CapacityError` 抛出；
- 单条失败以 `EngineError` 结果返回。
限流、并发、超时与重试全部由 `pagetrans.client.TranslationClient` 负责。
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

from pagetrans.exceptions import DataError
from pagetrans.types import ItemResult

_ConfigType = TypeVar("_ConfigType", bound="BaseEngineConfig")


class BaseEngineConfig(BaseModel):
    """所有引擎配置模型的基类。"""


class BaseTranslationEngine(ABC, Generic[_ConfigType]):
    """翻译引擎的纯异步抽象基类。"""

    CONFIG_MODEL: type[_ConfigType]
    VERSION: str = "1.0.0"

    def __init__(self, config: _ConfigType):
        self.config = config
        self.initialized: bool = False

    @property
    def name(self) -> str:
        """从类名自动推断引擎的名称。"""
        return self.__class__.__name__.replace("Engine", "").lower()

    async def initialize(self) -> None:
        """引擎的异步初始化钩子，用于建立连接池等。"""
        self.initialized = True

    async def close(self) -> None:
        """引擎的异步关闭钩子，用于安全释放资源。"""
        self.initialized = False

    @abstractmethod
    async def _execute_batch(
        self, texts: list[str], target_lang: str, source_lang: str
    ) -> list[ItemResult]:
        """[子类实现] 真正向外部服务提交一批文本。"""
        ...

    async def atranslate_batch(
        self, texts: list[str], target_lang: str, source_lang: str
    ) -> list[ItemResult]:
        """[模板方法] 提交一批文本，并保证结果与输入一一对齐。"""
        if not texts:
            return []
        results = await self._execute_batch(texts, target_lang, source_lang)
        if len(results) != len(texts):
            raise DataError(
                f"引擎 '{self.name}' 返回了 {len(results)} 条结果，期望 {len(texts)} 条。"
            )
        return results
