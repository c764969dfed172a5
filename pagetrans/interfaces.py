# pagetrans/interfaces.py
"""
本模块使用 typing.Protocol 定义了核心与外部协作方之间的接口协议。

核心不拥有任何具体的文档树或存储技术：
- 文档只是一个可遍历、可按句柄回写、可重新序列化的能力；
- 持久层只是一个带 TTL 的字节键值存储。
"""

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable

from pagetrans.types import TextNode


@runtime_checkable
class TranslatableDocument(Protocol):
    """外部文档协作方。`iter_text_nodes` 每次调用都返回一个新的、有限的一次性迭代器。"""

    @property
    def document_id(self) -> str: ...

    def iter_text_nodes(self) -> Iterator[TextNode]: ...

    def apply(self, node_ref: Any, text: str) -> None: ...

    def render(self) -> str: ...


@runtime_checkable
class PersistentStore(Protocol):
    """持久缓存层所需的最小键值存储协议。`ttl` 为 None 表示永不过期。"""

    async def get(self, key: str) -> bytes | None: ...

    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def close(self) -> None: ...
