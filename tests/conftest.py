# tests/conftest.py
"""项目全局共享的测试 Fixtures。"""

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from pytest_mock import MockerFixture
from rich.console import Console

from pagetrans.cache.stores import MemoryStore
from pagetrans.cache.tiered import TieredCache
from pagetrans.config import CacheConfig, PageTransConfig
from pagetrans.coordinator import Coordinator
from pagetrans.engines.debug import DebugEngine, DebugEngineConfig
from pagetrans.logging_config import setup_logging
from tests.helpers.factories import FakeClock

setup_logging(log_level="WARNING", log_format="console")

# 所有读取墙钟时间的模块都通过各自导入的 `now` 取时
CLOCK_TARGETS = (
    "pagetrans.cache.tiered.now",
    "pagetrans.cache.stores.now",
    "pagetrans.registry.now",
    "pagetrans.types.now",
)


@pytest.fixture(scope="session", autouse=True)
def disable_rich_colors_for_tests(
    session_mocker: MockerFixture,
) -> Generator[None, None, None]:
    """全局禁用 rich 库的颜色输出，以确保测试结果的确定性。"""
    original_init = Console.__init__

    def new_init(self: Console, *args: Any, **kwargs: Any) -> None:
        kwargs["force_terminal"] = False
        kwargs["color_system"] = None
        original_init(self, *args, **kwargs)

    session_mocker.patch("rich.console.Console.__init__", new=new_init)
    yield


@pytest.fixture
def clock(mocker: MockerFixture) -> FakeClock:
    fake = FakeClock()
    for target in CLOCK_TARGETS:
        mocker.patch(target, new=fake)
    return fake


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(
        memory_maxsize=100, ttl=3600, pending_staleness=300, stale_retention=86400
    )


@pytest.fixture
def tiered_cache(cache_config: CacheConfig) -> TieredCache:
    return TieredCache(MemoryStore(), cache_config)


@pytest.fixture
def test_config() -> PageTransConfig:
    """一个不依赖外部环境、退避和限流都很快的配置。"""
    return PageTransConfig(
        retry_policy={"max_retries": 2, "initial_backoff": 0.001, "max_backoff": 0.01},
        throttle={"requests_per_second": 1000, "max_concurrency": 4, "request_timeout": 1.0},
        cache={"backend": "memory", "pending_staleness": 300},
    )


@pytest.fixture
def debug_engine() -> DebugEngine:
    return DebugEngine(DebugEngineConfig())


@pytest_asyncio.fixture
async def coordinator(
    test_config: PageTransConfig, debug_engine: DebugEngine
) -> AsyncGenerator[Coordinator, None]:
    coord = Coordinator(test_config, engine=debug_engine, store=MemoryStore())
    await coord.initialize()
    yield coord
    await coord.close()
