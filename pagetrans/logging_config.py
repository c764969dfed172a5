# pagetrans/logging_config.py
"""
本模块负责集中配置项目的日志系统。

- console 格式：使用 Rich 渲染。INFO 及以上级别渲染为带键值表格的面板，
  DEBUG 级别渲染为紧凑的单行，避免批次级别的调试日志刷屏。
- json 格式：标准 JSON 行，供生产环境采集。
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

APP_LOGGER_NAME = "pagetrans"


class RichConsoleRenderer:
    """将 structlog 事件字典渲染为 Rich 面板或单行文本的处理器。"""

    _LEVEL_STYLES = {
        "debug": ("blue", "DEBUG   "),
        "info": ("green", "INFO    "),
        "warning": ("yellow", "WARNING "),
        "error": ("bold red", "ERROR   "),
        "critical": ("bold magenta", "CRITICAL"),
    }
    _PANEL_LEVELS = frozenset({"info", "warning", "error", "critical"})

    def __init__(
        self,
        kv_truncate_at: int = 120,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        kv_key_width: int = 16,
    ):
        self._console = Console()
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name
        self._kv_key_width = kv_key_width

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = str(event_dict.pop("event", "")).strip()
        if not event:
            return ""

        timestamp = str(event_dict.pop("timestamp", ""))
        level = str(event_dict.pop("level", "info")).lower()
        logger_name = str(event_dict.pop("logger", APP_LOGGER_NAME))
        style, level_text = self._LEVEL_STYLES.get(level, ("default", level.upper()))

        if level in self._PANEL_LEVELS:
            return self._render_panel(timestamp, level_text, style, logger_name, event, event_dict)
        return self._render_line(timestamp, level_text, style, logger_name, event, event_dict)

    def _format_value(self, value: Any) -> str:
        value_repr = repr(value)
        if len(value_repr) > self._kv_truncate_at:
            value_repr = value_repr[: self._kv_truncate_at - 1] + "…"
        return value_repr

    def _render_panel(
        self,
        timestamp: str,
        level_text: str,
        border_style: str,
        logger_name: str,
        event: str,
        kv: MutableMapping[str, Any],
    ) -> str:
        title_parts = [f"[{border_style}]{level_text}[/]"]
        if self._show_logger_name:
            title_parts.append(f"[cyan dim]({logger_name})[/]")

        renderables: list[RenderableType] = [Text(event)]
        if kv:
            kv_table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
            kv_table.add_column(style="dim", justify="right", width=self._kv_key_width)
            kv_table.add_column(style="bright_white", overflow="fold")
            for key, value in sorted(kv.items()):
                kv_table.add_row(f"{key} :", Text(self._format_value(value)))
            renderables.append(kv_table)

        subtitle = Text(timestamp, style="dim") if self._show_timestamp and timestamp else None
        with self._console.capture() as capture:
            self._console.print(
                Panel(
                    Group(*renderables),
                    title=Text.from_markup(" ".join(title_parts)),
                    title_align="left",
                    subtitle=subtitle,
                    subtitle_align="right",
                    border_style=border_style,
                    expand=False,
                )
            )
        return capture.get().rstrip()

    def _render_line(
        self,
        timestamp: str,
        level_text: str,
        style: str,
        logger_name: str,
        event: str,
        kv: MutableMapping[str, Any],
    ) -> str:
        line = Text()
        if self._show_timestamp and timestamp:
            line.append(timestamp, style="dim")
            line.append(" ")
        line.append(level_text, style=style)
        line.append(" ")
        line.append(event)
        for key, value in sorted(kv.items()):
            line.append(f" {key}=", style="dim")
            line.append(self._format_value(value))
        if self._show_logger_name:
            line.append(f" ({logger_name})", style="cyan dim")

        with self._console.capture() as capture:
            self._console.print(line)
        return capture.get().rstrip()


def setup_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    show_timestamp: bool = True,
    show_logger_name: bool = True,
) -> None:
    """
    配置全局的 structlog 日志系统。这是整个应用的日志配置入口。

    Args:
        log_level: 本项目日志的最低级别。第三方库固定为 WARNING。
        log_format: 'console' 用于开发环境，'json' 用于生产环境。
        show_timestamp: console 模式下是否显示时间戳。
        show_logger_name: console 模式下是否显示记录器名称。
    """
    timestamper: Processor
    if log_format == "json":
        timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    else:
        timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(
            RichConsoleRenderer(
                show_timestamp=show_timestamp, show_logger_name=show_logger_name
            )
        )

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 标准 logging 只负责输出 structlog 已经渲染好的字符串
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(log_level.upper())

    structlog.get_logger("pagetrans.logging_config").debug(
        "日志系统已配置完成。", log_format=log_format, app_log_level=log_level.upper()
    )
