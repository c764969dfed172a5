# pagetrans/cli/document.py
"""文档翻译与路由决策相关的 CLI 命令。"""

import asyncio
from pathlib import Path
from typing import Annotated

import structlog
import typer
from rich.console import Console
from rich.table import Table

from pagetrans.cli.state import State
from pagetrans.coordinator import Coordinator
from pagetrans.exceptions import PageTransError
from pagetrans.html import HtmlDocument
from pagetrans.types import (
    CacheStatus,
    ReprocessWithCheck,
    RoutingDecision,
    TranslationContext,
    UseCache,
)
from pagetrans.utils import validate_lang_codes

logger = structlog.get_logger(__name__)
console = Console()


def _print_decision(decision: RoutingDecision) -> None:
    table = Table(title="路由决策", show_header=False)
    table.add_column("字段", style="cyan")
    table.add_column("值")
    table.add_row("key", decision.key)
    table.add_row("status", decision.status.value)
    table.add_row("strategy", decision.strategy.kind)
    ref = None
    if isinstance(decision.strategy, UseCache):
        ref = decision.strategy.artifact_ref
    elif isinstance(decision.strategy, ReprocessWithCheck):
        ref = decision.strategy.stale_ref
    if ref is not None:
        table.add_row("expires_at", str(ref.entry.expires_at))
        table.add_row("partial", str(ref.entry.metadata.get("partial", False)))
    console.print(table)


async def _async_translate(
    coordinator: Coordinator,
    document: HtmlDocument,
    context: TranslationContext,
    force: bool,
    allow_stale: bool,
) -> str | None:
    try:
        await coordinator.initialize()
        key = coordinator.document_key(
            document.document_id, context.source_lang, context.target_lang
        )
        decision = await coordinator.decide(key)
        _print_decision(decision)

        strategy = decision.strategy
        if not force and isinstance(strategy, UseCache):
            console.print("[green]命中缓存，直接返回已翻译的文档。[/green]")
            return strategy.artifact_ref.entry.value
        if not force and allow_stale and isinstance(strategy, ReprocessWithCheck):
            console.print("[yellow]缓存已过期，按 --allow-stale 返回过期的文档。[/yellow]")
            return strategy.stale_ref.entry.value

        entry = await coordinator.run_job(document, context, key)
        stats = coordinator.stats()
        console.print(
            f"[bold]任务完成[/bold]: status={entry.status.value} "
            f"translated={entry.metadata.get('translated_items', 0)} "
            f"cached={entry.metadata.get('cached_items', 0)} "
            f"failed={entry.metadata.get('failed_items', 0)} "
            f"requests={stats['client']['requests']}"
        )
        if entry.status is not CacheStatus.SUCCESS:
            return None
        return entry.value
    finally:
        await coordinator.close()


def translate(
    ctx: typer.Context,
    input_path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="要翻译的 HTML 文件。")
    ],
    target_lang: Annotated[str | None, typer.Option("--target", "-t", help="目标语言代码。")] = None,
    source_lang: Annotated[str | None, typer.Option("--source", "-s", help="源语言代码。")] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="输出文件，默认打印到标准输出。")
    ] = None,
    document_id: Annotated[
        str | None, typer.Option("--document-id", help="文档标识，默认为文件的 URI。")
    ] = None,
    force: Annotated[bool, typer.Option("--force", help="忽略缓存，强制重新处理。")] = False,
    allow_stale: Annotated[
        bool, typer.Option("--allow-stale", help="缓存过期时直接返回过期的文档。")
    ] = False,
) -> None:
    """翻译一个本地 HTML 文件。"""
    state: State = ctx.obj
    config = state.config
    source = source_lang or config.default_source_lang
    target = target_lang or config.default_target_lang
    try:
        validate_lang_codes([source, target])
    except ValueError as e:
        console.print(f"[bold red]❌ 语言代码错误: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    document = HtmlDocument.from_file(input_path, document_id)
    context = TranslationContext(source_lang=source, target_lang=target)
    try:
        html = asyncio.run(
            _async_translate(Coordinator(config), document, context, force, allow_stale)
        )
    except PageTransError as e:
        console.print(f"[bold red]❌ 翻译失败: {e}[/bold red]")
        logger.error("翻译命令失败", exc_info=True)
        raise typer.Exit(code=1) from e

    if html is None:
        console.print("[bold red]❌ 没有任何文本被成功翻译。[/bold red]")
        raise typer.Exit(code=2)
    if output is not None:
        output.write_text(html, encoding="utf-8")
        console.print(f"[green]✅ 已写入 {output}[/green]")
    else:
        typer.echo(html)


async def _async_decide(coordinator: Coordinator, key: str) -> RoutingDecision:
    try:
        await coordinator.initialize()
        return await coordinator.decide(key)
    finally:
        await coordinator.close()


def decide(
    ctx: typer.Context,
    document_id: Annotated[str, typer.Argument(help="文档标识（通常为 URL）。")],
    target_lang: Annotated[str | None, typer.Option("--target", "-t")] = None,
    source_lang: Annotated[str | None, typer.Option("--source", "-s")] = None,
) -> None:
    """打印某个文档/语言对当前的路由决策。"""
    state: State = ctx.obj
    coordinator = Coordinator(state.config)
    key = coordinator.document_key(document_id, source_lang, target_lang)
    try:
        decision = asyncio.run(_async_decide(coordinator, key))
    except PageTransError as e:
        console.print(f"[bold red]❌ 查询失败: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    _print_decision(decision)
