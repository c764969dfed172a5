# tests/unit/test_config.py
"""针对 `pagetrans.config` 的单元测试：默认值、环境变量覆盖与非法组合的拒绝。"""

import pytest

from pagetrans.config import (
    BatchConfig,
    CacheConfig,
    EngineName,
    PageTransConfig,
    RetryPolicyConfig,
    load_config,
)
from pagetrans.exceptions import ConfigurationError


def test_defaults_are_sane(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir("/")
    config = PageTransConfig()

    assert config.active_engine is EngineName.DEBUG
    assert config.default_source_lang == "auto"
    assert config.throttle.bucket_capacity == config.throttle.requests_per_second
    assert config.cache.backend == "memory"
    assert config.retry_policy.split_failed_batches is True


def test_environment_overrides_nested_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PT_THROTTLE__MAX_CONCURRENCY", "3")
    monkeypatch.setenv("PT_CACHE__TTL", "120")
    monkeypatch.setenv("PT_ACTIVE_ENGINE", "http")

    config = load_config()

    assert config.throttle.max_concurrency == 3
    assert config.cache.ttl == 120
    assert config.active_engine is EngineName.HTTP


@pytest.mark.parametrize(
    "overrides",
    [
        {"throttle": {"max_concurrency": 0}},
        {"throttle": {"requests_per_second": -1}},
        {"retry_policy": {"initial_backoff": 5, "max_backoff": 1}},
        {"batch": {"min_chars_per_batch": 10000, "max_chars_per_batch": 9000}},
        {"cache": {"backend": "redis"}},
        {"default_target_lang": "not a language"},
    ],
)
def test_invalid_combinations_are_rejected(overrides: dict) -> None:  # type: ignore[type-arg]
    with pytest.raises(ConfigurationError):
        load_config(**overrides)


def test_explicit_burst_sets_bucket_capacity() -> None:
    config = load_config(throttle={"requests_per_second": 0.5, "burst": 4})
    assert config.throttle.bucket_capacity == 4


def test_sub_models_validate_on_their_own() -> None:
    with pytest.raises(ValueError):
        RetryPolicyConfig(initial_backoff=2.0, max_backoff=1.0)
    with pytest.raises(ValueError):
        BatchConfig(decay_factor=1.5)
    assert CacheConfig(backend="redis", redis_url="redis://localhost:6379/0").redis_url
