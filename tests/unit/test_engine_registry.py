# tests/unit/test_engine_registry.py
"""针对引擎动态发现与实例化的单元测试。"""

import pytest

from pagetrans.engine_registry import ENGINE_REGISTRY, create_engine, discover_engines
from pagetrans.engines.debug import DebugEngine, DebugEngineConfig
from pagetrans.engines.http import HttpEngine
from pagetrans.exceptions import ConfigurationError, EngineNotFoundError


def test_discover_registers_builtin_engines() -> None:
    discover_engines()
    assert ENGINE_REGISTRY["debug"] is DebugEngine
    assert ENGINE_REGISTRY["http"] is HttpEngine


def test_create_engine_validates_config() -> None:
    engine = create_engine("debug", {"debug": {"translation_map": {"a": "b"}}})
    assert isinstance(engine, DebugEngine)
    assert engine.config.translation_map == {"a": "b"}


def test_create_engine_accepts_config_instance() -> None:
    config = DebugEngineConfig(mode="FAIL")
    engine = create_engine("debug", {"debug": config})
    assert engine.config is config


def test_unknown_engine_raises() -> None:
    with pytest.raises(EngineNotFoundError):
        create_engine("does-not-exist")


def test_invalid_engine_config_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        create_engine("debug", {"debug": {"latency": -1}})
