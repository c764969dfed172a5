# tests/unit/test_logging.py
"""针对 `pagetrans.logging_config` 的单元测试。"""

import logging

from pagetrans.logging_config import APP_LOGGER_NAME, RichConsoleRenderer, setup_logging


def test_debug_events_render_as_single_line() -> None:
    renderer = RichConsoleRenderer(show_timestamp=False)
    line = renderer(
        None,
        "debug",
        {"event": "批次翻译完成", "level": "debug", "logger": "pagetrans.client", "items": 3},
    )

    assert "\n" not in line
    assert "批次翻译完成" in line
    assert "items=3" in line
    assert "(pagetrans.client)" in line


def test_info_events_render_as_panel_with_kv_table() -> None:
    renderer = RichConsoleRenderer(show_timestamp=False, kv_truncate_at=10)
    panel = renderer(
        None,
        "info",
        {"event": "文档任务完成", "level": "info", "key": "doc:" + "a" * 64},
    )

    assert "文档任务完成" in panel
    assert "key :" in panel
    assert "…" in panel
    assert "a" * 64 not in panel


def test_empty_event_renders_nothing() -> None:
    assert RichConsoleRenderer()(None, "info", {"event": "  "}) == ""


def test_setup_logging_sets_app_level() -> None:
    setup_logging(log_level="DEBUG", log_format="json")
    try:
        assert logging.getLogger(APP_LOGGER_NAME).level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING
    finally:
        setup_logging(log_level="WARNING", log_format="console")
