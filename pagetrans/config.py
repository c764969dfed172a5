# pagetrans/config.py
"""
pagetrans 配置模型（pydantic v2 + pydantic-settings）。

所有限流、并发、批次预算、重试、TTL 与陈旧阈值都由调用方提供，
非法组合会在启动时以 `ConfigurationError` 被拒绝。
环境变量使用 `PT_` 前缀，嵌套字段以 `__` 分隔，例如 `PT_THROTTLE__MAX_CONCURRENCY=4`。
"""

import enum
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagetrans.exceptions import ConfigurationError
from pagetrans.utils import AUTO_LANG, validate_lang_codes


class EngineName(str, enum.Enum):
    DEBUG = "debug"
    HTTP = "http"


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "console"


class RetryPolicyConfig(BaseModel):
    max_retries: int = Field(default=2, ge=0)
    initial_backoff: float = Field(default=1.0, gt=0)
    max_backoff: float = Field(default=30.0, gt=0)
    split_failed_batches: bool = Field(
        default=True, description="整批重试耗尽后，是否退化为逐条提交"
    )

    @model_validator(mode="after")
    def check_backoff_consistency(self) -> "RetryPolicyConfig":
        if self.max_backoff < self.initial_backoff:
            raise ValueError("max_backoff 必须大于或等于 initial_backoff")
        return self


class ThrottleConfig(BaseModel):
    """进程级共享的限流与并发参数。"""

    requests_per_second: float = Field(default=5.0, gt=0)
    burst: float | None = Field(default=None, gt=0, description="令牌桶容量，默认等于每秒请求数")
    max_concurrency: int = Field(default=10, gt=0)
    request_timeout: float = Field(default=30.0, gt=0, description="单次请求超时（秒）")

    @property
    def bucket_capacity(self) -> float:
        return self.burst if self.burst is not None else max(1.0, self.requests_per_second)


class BatchConfig(BaseModel):
    max_chars_per_batch: int = Field(default=9000, gt=0)
    min_chars_per_batch: int = Field(default=2000, gt=0)
    max_items_per_batch: int = Field(default=100, gt=0)
    decay_factor: float = Field(default=0.5, gt=0, lt=1)
    growth_factor: float = Field(default=1.25, gt=1)
    growth_after: int = Field(default=3, gt=0, description="连续多少个健康批次后扩大预算")
    latency_threshold: float = Field(default=10.0, gt=0, description="超过该耗时（秒）视为高延迟")

    @model_validator(mode="after")
    def check_bounds(self) -> "BatchConfig":
        if self.min_chars_per_batch > self.max_chars_per_batch:
            raise ValueError("min_chars_per_batch 不能大于 max_chars_per_batch")
        return self


class CacheConfig(BaseModel):
    memory_maxsize: int = Field(default=1000, gt=0)
    ttl: int = Field(default=3600, gt=0, description="文档产物的逻辑有效期（秒）")
    text_ttl: int = Field(default=86400, gt=0, description="单条译文的逻辑有效期（秒）")
    pending_staleness: float = Field(
        default=300.0, gt=0, description="Pending 条目或在途任务被视为仍然存活的最大年龄（秒）"
    )
    stale_retention: int = Field(
        default=7 * 86400, ge=0, description="过期产物在持久层中额外保留的时长（秒）"
    )
    backend: Literal["memory", "redis", "sqlite"] = "memory"
    redis_url: str | None = None
    sqlite_path: str = "pagetrans_cache.db"
    key_prefix: str = "pagetrans:"
    sweep_interval: float | None = Field(
        default=None, gt=0, description="内存层周期清理间隔（秒），None 表示仅惰性过期"
    )

    @model_validator(mode="after")
    def check_backend(self) -> "CacheConfig":
        if self.backend == "redis" and not self.redis_url:
            raise ValueError("backend=redis 时必须提供 redis_url")
        return self


class FilterConfig(BaseModel):
    min_length: int = Field(default=2, ge=0)
    max_length: int = Field(default=10000, gt=0)
    special_char_threshold: float = Field(default=0.33, gt=0, le=1)
    script_threshold: float = Field(default=0.5, gt=0, le=1)
    functional_words: list[str] = Field(
        default_factory=lambda: ["ok", "yes", "no", "on", "off", "go", "up", "x", ">"]
    )
    functional_max_length: int = Field(default=3, ge=0)

    @model_validator(mode="after")
    def check_lengths(self) -> "FilterConfig":
        if self.min_length > self.max_length:
            raise ValueError("min_length 不能大于 max_length")
        return self


class CollectorConfig(BaseModel):
    ideal_min_length: int = Field(default=20, ge=0)
    ideal_max_length: int = Field(default=300, gt=0)


class PageTransConfig(BaseSettings):
    """pagetrans 核心配置模型。"""

    model_config = SettingsConfigDict(
        env_prefix="PT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    active_engine: EngineName = EngineName.DEBUG
    default_source_lang: str = AUTO_LANG
    default_target_lang: str = "zh"

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    retry_policy: RetryPolicyConfig = Field(default_factory=RetryPolicyConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    engine_configs: dict[str, Any] = Field(default_factory=dict)

    @field_validator("default_source_lang", "default_target_lang")
    @classmethod
    def validate_lang_code(cls, v: str) -> str:
        validate_lang_codes([v])
        return v


def load_config(**overrides: Any) -> PageTransConfig:
    """加载配置（环境变量 + .env + 显式覆盖），校验失败时抛出 ConfigurationError。"""
    try:
        return PageTransConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"配置校验失败: {e}") from e
