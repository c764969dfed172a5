# pagetrans/__init__.py
"""pagetrans: 面向大型 HTML 文档的翻译管线。

提供文本收集与过滤、自适应分批、限流翻译客户端、多层缓存，
以及供请求处理方使用的缓存感知路由决策。
"""

__version__ = "1.0.0"

from .config import EngineName, PageTransConfig, load_config
from .coordinator import Coordinator
from .types import (
    CacheEntry,
    CacheStatus,
    RoutingDecision,
    RoutingStatus,
    StructuralRole,
    TranslationContext,
)

__all__ = [
    "__version__",
    "CacheEntry",
    "CacheStatus",
    "Coordinator",
    "EngineName",
    "PageTransConfig",
    "RoutingDecision",
    "RoutingStatus",
    "StructuralRole",
    "TranslationContext",
    "load_config",
]
