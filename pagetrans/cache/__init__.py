# pagetrans/cache/__init__.py
"""多层缓存：内存 LRU 层 + 可插拔的持久层。"""

from pagetrans.cache.keys import document_key, text_key
from pagetrans.cache.memory import MemoryTier
from pagetrans.cache.stores import MemoryStore, RedisStore, SQLiteStore, create_store
from pagetrans.cache.tiered import CacheStats, TieredCache

__all__ = [
    "CacheStats",
    "MemoryStore",
    "MemoryTier",
    "RedisStore",
    "SQLiteStore",
    "TieredCache",
    "create_store",
    "document_key",
    "text_key",
]
