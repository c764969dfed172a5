# pagetrans/engines/debug.py
"""提供一个用于开发和测试的调试翻译引擎。"""

import asyncio

from pydantic import Field

from pagetrans.engines.base import BaseEngineConfig, BaseTranslationEngine
from pagetrans.exceptions import TransportError
from pagetrans.types import EngineError, EngineSuccess, ItemResult


class DebugEngineConfig(BaseEngineConfig):
    """Debug 引擎的配置模型。"""

    mode: str = Field(default="SUCCESS", description="SUCCESS 或 FAIL（整批传输失败）")
    fail_on_text: str | None = Field(default=None, description="该文本返回单条失败")
    fail_is_retryable: bool = True
    hang_on_text: str | None = Field(default=None, description="批次包含该文本时请求挂起")
    hang_seconds: float = Field(default=3600.0, gt=0)
    latency: float = Field(default=0.0, ge=0)
    translation_map: dict[str, str] = Field(default_factory=dict)


class DebugEngine(BaseTranslationEngine[DebugEngineConfig]):
    """一个确定性的调试翻译引擎，记录每一次提交以便测试断言。"""

    CONFIG_MODEL = DebugEngineConfig
    VERSION = "1.2.0"

    def __init__(self, config: DebugEngineConfig | None = None):
        super().__init__(config or DebugEngineConfig())
        self.submissions: list[list[str]] = []

    @property
    def call_count(self) -> int:
        return len(self.submissions)

    async def _execute_batch(
        self, texts: list[str], target_lang: str, source_lang: str
    ) -> list[ItemResult]:
        self.submissions.append(list(texts))
        if self.config.latency:
            await asyncio.sleep(self.config.latency)
        if self.config.hang_on_text is not None and self.config.hang_on_text in texts:
            await asyncio.sleep(self.config.hang_seconds)

        if self.config.mode == "FAIL":
            raise TransportError(
                "DebugEngine is in FAIL mode.", retryable=self.config.fail_is_retryable
            )

        results: list[ItemResult] = []
        for text in texts:
            if self.config.fail_on_text is not None and text == self.config.fail_on_text:
                results.append(
                    EngineError(
                        error_message=f"模拟失败：检测到配置的文本 '{text}'",
                        is_retryable=self.config.fail_is_retryable,
                    )
                )
                continue
            translated = self.config.translation_map.get(
                text, f"Translated({text}) to {target_lang}"
            )
            results.append(EngineSuccess(translated_text=translated))
        return results
