# pagetrans/engines/http.py
"""
提供一个通过 JSON HTTP 接口访问外部翻译服务的引擎。

请求体：``{"text": [...], "source_lang": "...", "target_lang": "..."}``
响应体：``{"translations": [...]}``，每一项为译文字符串，或为 null 表示该条失败。
"""

from typing import Any

import httpx
import structlog
from pydantic import Field, SecretStr

from pagetrans.engines.base import BaseEngineConfig, BaseTranslationEngine
from pagetrans.exceptions import CapacityError, DataError, TransportError
from pagetrans.types import EngineError, EngineSuccess, ItemResult

logger = structlog.get_logger(__name__)


class HttpEngineConfig(BaseEngineConfig):
    """HTTP 引擎的配置模型。"""

    endpoint: str = "http://localhost:1188/translate"
    api_key: SecretStr | None = None
    timeout_total: float = Field(default=30.0, gt=0)
    timeout_connect: float = Field(default=5.0, gt=0)


class HttpEngine(BaseTranslationEngine[HttpEngineConfig]):
    """调用 JSON 翻译接口的引擎实现。"""

    CONFIG_MODEL = HttpEngineConfig
    VERSION = "1.0.0"

    def __init__(
        self,
        config: HttpEngineConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config or HttpEngineConfig())
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.config.api_key is not None:
                headers["Authorization"] = f"Bearer {self.config.api_key.get_secret_value()}"
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=httpx.Timeout(
                    self.config.timeout_total, connect=self.config.timeout_connect
                ),
                transport=self._transport,
            )
            logger.info("HTTP 翻译引擎已初始化", endpoint=self.config.endpoint)
        await super().initialize()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        await super().close()

    async def _execute_batch(
        self, texts: list[str], target_lang: str, source_lang: str
    ) -> list[ItemResult]:
        if self._client is None:
            await self.initialize()
        assert self._client is not None

        payload = {"text": texts, "source_lang": source_lang, "target_lang": target_lang}
        try:
            response = await self._client.post(self.config.endpoint, json=payload)
        except httpx.TimeoutException as e:
            raise TransportError(f"翻译服务请求超时: {e}", retryable=True) from e
        except httpx.TransportError as e:
            raise TransportError(f"无法连接到翻译服务: {e}", retryable=True) from e

        self._raise_for_status(response)
        return self._parse_translations(response, expected=len(texts))

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise CapacityError(
                "翻译服务返回限流响应 (429)",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if status >= 500:
            raise TransportError(
                f"翻译服务内部错误 ({status})", retryable=True, status_code=status
            )
        if status >= 400:
            raise TransportError(
                f"翻译服务拒绝了请求 ({status}): {response.text[:200]}",
                retryable=False,
                status_code=status,
            )

    @staticmethod
    def _parse_translations(response: httpx.Response, expected: int) -> list[ItemResult]:
        try:
            body: Any = response.json()
        except ValueError as e:
            raise DataError(f"翻译服务返回了非 JSON 响应: {e}") from e

        translations = body.get("translations") if isinstance(body, dict) else None
        if not isinstance(translations, list) or len(translations) != expected:
            raise DataError("翻译服务返回的 translations 字段缺失或条数不符")

        results: list[ItemResult] = []
        for value in translations:
            if isinstance(value, str) and value.strip():
                results.append(EngineSuccess(translated_text=value))
            else:
                results.append(
                    EngineError(error_message="翻译服务未返回该条译文", is_retryable=True)
                )
        return results
