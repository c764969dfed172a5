# tests/unit/test_stores.py
"""针对持久层存储实现（内存、SQLite、Redis）的单元测试。"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as aioredis

from pagetrans.cache.stores import MemoryStore, RedisStore, SQLiteStore, create_store
from pagetrans.config import CacheConfig
from pagetrans.exceptions import CacheUnavailableError, ConfigurationError
from tests.helpers.factories import FakeClock


@pytest.mark.asyncio
async def test_memory_store_expires_lazily(clock: FakeClock) -> None:
    store = MemoryStore()
    await store.put("k", b"v", ttl=10)
    await store.put("forever", b"v")

    assert await store.get("k") == b"v"
    clock.advance(10)
    assert await store.get("k") is None
    assert await store.get("forever") == b"v"
    assert len(store) == 1


@pytest.mark.asyncio
async def test_sqlite_store_round_trip_and_expiry(tmp_path: Path, clock: FakeClock) -> None:
    store = SQLiteStore(str(tmp_path / "cache.db"))
    await store.connect()
    try:
        await store.put("k", b"\x00payload", ttl=5)
        assert await store.get("k") == b"\x00payload"

        await store.put("k", b"replaced", ttl=5)
        assert await store.get("k") == b"replaced"

        clock.advance(5)
        assert await store.get("k") is None

        await store.put("other", b"v")
        await store.delete("other")
        assert await store.get("other") is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sqlite_store_persists_across_connections(tmp_path: Path) -> None:
    path = str(tmp_path / "cache.db")
    first = SQLiteStore(path)
    await first.connect()
    await first.put("k", b"v", ttl=3600)
    await first.close()

    second = SQLiteStore(path)
    await second.connect()
    try:
        assert await second.get("k") == b"v"
    finally:
        await second.close()


@pytest.mark.asyncio
async def test_sqlite_store_requires_connect() -> None:
    with pytest.raises(CacheUnavailableError):
        await SQLiteStore(":memory:").get("k")


@pytest.mark.asyncio
async def test_redis_store_prefixes_keys_and_passes_ttl() -> None:
    client = AsyncMock()
    client.get.return_value = b"v"
    store = RedisStore(client, key_prefix="test:")

    await store.put("k", b"v", ttl=30)
    assert await store.get("k") == b"v"
    await store.delete("k")

    client.set.assert_awaited_once_with("test:k", b"v", ex=30)
    client.get.assert_awaited_once_with("test:k")
    client.delete.assert_awaited_once_with("test:k")


@pytest.mark.asyncio
async def test_redis_errors_become_cache_unavailable() -> None:
    client = AsyncMock()
    client.get.side_effect = aioredis.ConnectionError("refused")
    store = RedisStore(client)

    with pytest.raises(CacheUnavailableError):
        await store.get("k")


@pytest.mark.asyncio
async def test_create_store_selects_backend(tmp_path: Path) -> None:
    memory = await create_store(CacheConfig())
    assert isinstance(memory, MemoryStore)

    sqlite = await create_store(
        CacheConfig(backend="sqlite", sqlite_path=str(tmp_path / "c.db"))
    )
    assert isinstance(sqlite, SQLiteStore)
    await sqlite.close()


@pytest.mark.asyncio
async def test_create_store_rejects_redis_backend_without_url() -> None:
    # 绕过模型校验，模拟在构造之后被改写的配置
    config = CacheConfig.model_construct(backend="redis", redis_url=None)
    with pytest.raises(ConfigurationError, match="redis_url"):
        await create_store(config)
