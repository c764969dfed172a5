# pagetrans/engine_registry.py
"""本模块负责动态发现和加载 `pagetrans.engines` 包下所有可用的翻译引擎。"""

import importlib
import pkgutil
from typing import Any

import structlog

from pagetrans.engines.base import BaseTranslationEngine
from pagetrans.exceptions import ConfigurationError, EngineNotFoundError

log = structlog.get_logger(__name__)
ENGINE_REGISTRY: dict[str, type[BaseTranslationEngine[Any]]] = {}


def discover_engines() -> None:
    """
    动态发现 `pagetrans.engines` 包下的所有引擎并注册。

    此函数是幂等的，只在首次调用时执行发现操作。
    缺少可选依赖的引擎模块会被跳过并记录在摘要日志中。
    """
    if ENGINE_REGISTRY:
        return

    import pagetrans.engines

    successful_engines: list[str] = []
    skipped_engines: list[dict[str, str]] = []

    for module_info in pkgutil.iter_modules(pagetrans.engines.__path__):
        module_name = module_info.name
        if module_name == "base" or module_name.startswith("_"):
            continue

        try:
            module = importlib.import_module(f"pagetrans.engines.{module_name}")
        except ImportError as e:
            skipped_engines.append(
                {"engine_name": module_name, "missing_dependency": str(e.name)}
            )
            continue

        for attr in vars(module).values():
            if (
                isinstance(attr, type)
                and issubclass(attr, BaseTranslationEngine)
                and attr is not BaseTranslationEngine
                and attr.__module__ == module.__name__
            ):
                engine_name = attr.__name__.replace("Engine", "").lower()
                ENGINE_REGISTRY[engine_name] = attr
                successful_engines.append(engine_name)

    log_payload: dict[str, Any] = {"registered": sorted(successful_engines)}
    if skipped_engines:
        log_payload["skipped"] = skipped_engines
    log.info("引擎发现完成", **log_payload)


def create_engine(
    name: str, engine_configs: dict[str, Any] | None = None
) -> BaseTranslationEngine[Any]:
    """按名称实例化引擎，并用 `engine_configs[name]` 校验其配置。"""
    discover_engines()
    engine_class = ENGINE_REGISTRY.get(name)
    if engine_class is None:
        raise EngineNotFoundError(
            f"引擎 '{name}' 未注册。可用引擎: {sorted(ENGINE_REGISTRY)}"
        )

    raw_config = (engine_configs or {}).get(name) or {}
    if isinstance(raw_config, engine_class.CONFIG_MODEL):
        engine_config = raw_config
    else:
        try:
            engine_config = engine_class.CONFIG_MODEL.model_validate(raw_config)
        except ValueError as e:
            raise ConfigurationError(f"引擎 '{name}' 的配置无效: {e}") from e
    return engine_class(engine_config)
