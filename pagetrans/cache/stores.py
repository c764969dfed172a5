# pagetrans/cache/stores.py
"""
持久缓存层的存储实现，均满足 `pagetrans.interfaces.PersistentStore` 协议。

- MemoryStore：进程内字典，用于测试和单进程部署；
- RedisStore：基于 `redis.asyncio`，用于多进程共享；
- SQLiteStore：基于 `aiosqlite`，用于单机持久化。
底层存储的任何错误都会被包装为 `CacheUnavailableError` 抛出。
"""

from __future__ import annotations

import aiosqlite
import redis.asyncio as aioredis
import structlog

from pagetrans.config import CacheConfig
from pagetrans.exceptions import CacheUnavailableError, ConfigurationError
from pagetrans.interfaces import PersistentStore
from pagetrans.utils import now

logger = structlog.get_logger(__name__)


class MemoryStore:
    """一个带惰性过期的进程内字节存储。"""

    def __init__(self) -> None:
        self._data: dict[str, tuple[bytes, float | None]] = {}

    async def get(self, key: str) -> bytes | None:
        record = self._data.get(key)
        if record is None:
            return None
        value, expires_at = record
        if expires_at is not None and now() >= expires_at:
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None:
        self._data[key] = (value, now() + ttl if ttl is not None else None)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class RedisStore:
    """基于 Redis 的分布式字节存储，TTL 交给 Redis 的 `EX` 处理。"""

    def __init__(self, client: aioredis.Redis, key_prefix: str = "pagetrans:"):
        self._client = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "pagetrans:") -> RedisStore:
        return cls(aioredis.from_url(url), key_prefix=key_prefix)

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._client.get(self._prefix + key)
        except aioredis.RedisError as e:
            logger.error("Redis 操作失败", operation="get", key=key, error=str(e))
            raise CacheUnavailableError(f"Redis 读取失败: {e}") from e

    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None:
        try:
            await self._client.set(self._prefix + key, value, ex=ttl)
        except aioredis.RedisError as e:
            logger.error(
                "Redis 写入操作失败", operation="set", key=key, ttl=ttl, error=str(e)
            )
            raise CacheUnavailableError(f"Redis 写入失败: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._prefix + key)
        except aioredis.RedisError as e:
            raise CacheUnavailableError(f"Redis 删除失败: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class SQLiteStore:
    """基于 aiosqlite 的单机字节存储。过期行在读取时惰性删除。"""

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS cache_entries (
            key TEXT PRIMARY KEY,
            value BLOB NOT NULL,
            expires_at REAL
        )
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        try:
            self._conn = await aiosqlite.connect(self.db_path, isolation_level=None)
            if self.db_path != ":memory:":
                await self._conn.execute("PRAGMA journal_mode = WAL;")
            await self._conn.execute(self._SCHEMA)
            logger.info("SQLite 缓存存储已连接", db_path=self.db_path)
        except aiosqlite.Error as e:
            logger.error("连接 SQLite 缓存存储失败", exc_info=True)
            raise CacheUnavailableError(f"无法打开 SQLite 缓存: {e}") from e

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise CacheUnavailableError("SQLite 缓存存储未连接。请先调用 connect()。")
        return self._conn

    async def get(self, key: str) -> bytes | None:
        try:
            async with self.connection.execute(
                "SELECT value, expires_at FROM cache_entries WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None
            value, expires_at = row
            if expires_at is not None and now() >= expires_at:
                await self.connection.execute(
                    "DELETE FROM cache_entries WHERE key = ?", (key,)
                )
                return None
            return bytes(value)
        except aiosqlite.Error as e:
            raise CacheUnavailableError(f"SQLite 读取失败: {e}") from e

    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None:
        expires_at = now() + ttl if ttl is not None else None
        try:
            await self.connection.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value, expires_at) VALUES (?, ?, ?)",
                (key, value, expires_at),
            )
        except aiosqlite.Error as e:
            raise CacheUnavailableError(f"SQLite 写入失败: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.connection.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        except aiosqlite.Error as e:
            raise CacheUnavailableError(f"SQLite 删除失败: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 缓存存储已关闭", db_path=self.db_path)


async def create_store(config: CacheConfig) -> PersistentStore:
    """根据配置创建并连接持久层存储。"""
    if config.backend == "redis":
        if config.redis_url is None:
            raise ConfigurationError("backend=redis 时必须提供 redis_url")
        store: PersistentStore = RedisStore.from_url(config.redis_url, config.key_prefix)
    elif config.backend == "sqlite":
        sqlite_store = SQLiteStore(config.sqlite_path)
        await sqlite_store.connect()
        store = sqlite_store
    else:
        store = MemoryStore()
    logger.info("持久缓存层已创建", backend=config.backend)
    return store
