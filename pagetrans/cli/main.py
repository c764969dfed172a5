# pagetrans/cli/main.py
"""pagetrans CLI 的主入口点。"""

from typing import Annotated

import typer
from rich.console import Console

import pagetrans
from pagetrans.cli.cache import cache_app
from pagetrans.cli.document import decide, translate
from pagetrans.cli.state import State
from pagetrans.config import load_config
from pagetrans.engine_registry import discover_engines
from pagetrans.exceptions import ConfigurationError
from pagetrans.logging_config import setup_logging

app = typer.Typer(
    name="pagetrans",
    help="🌐 pagetrans: 带多层缓存与路由决策的大型 HTML 文档翻译管线。",
    add_completion=False,
    no_args_is_help=True,
)
app.command("translate")(translate)
app.command("decide")(decide)
app.add_typer(cache_app, name="cache")

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"pagetrans [bold cyan]v{pagetrans.__version__}[/bold cyan]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="显示版本信息并退出。",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """在任何子命令执行前加载配置、配置日志并发现引擎。"""
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print("[bold red]❌ 启动失败：无法加载配置。[/bold red]")
        console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(code=1) from e

    # 日志配置必须先于引擎发现
    setup_logging(log_level=config.logging.level, log_format=config.logging.format)
    discover_engines()
    ctx.obj = State(config=config)
