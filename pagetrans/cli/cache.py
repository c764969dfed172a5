# pagetrans/cli/cache.py
"""缓存维护相关的 CLI 命令。"""

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from pagetrans.cli.state import State
from pagetrans.coordinator import Coordinator
from pagetrans.exceptions import PageTransError

console = Console()
cache_app = typer.Typer(help="缓存维护（失效、清理）")


async def _async_invalidate(coordinator: Coordinator, key: str) -> None:
    try:
        await coordinator.initialize()
        await coordinator.invalidate(key)
    finally:
        await coordinator.close()


async def _async_sweep(coordinator: Coordinator) -> int:
    try:
        await coordinator.initialize()
        return await coordinator.sweep()
    finally:
        await coordinator.close()


@cache_app.command("invalidate")
def invalidate(
    ctx: typer.Context,
    document_id: Annotated[str, typer.Argument(help="文档标识（通常为 URL）。")],
    target_lang: Annotated[str | None, typer.Option("--target", "-t")] = None,
    source_lang: Annotated[str | None, typer.Option("--source", "-s")] = None,
) -> None:
    """删除某个文档/语言对的缓存产物。"""
    state: State = ctx.obj
    coordinator = Coordinator(state.config)
    key = coordinator.document_key(document_id, source_lang, target_lang)
    try:
        asyncio.run(_async_invalidate(coordinator, key))
    except PageTransError as e:
        console.print(f"[bold red]❌ 失效操作失败: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]✅ 已失效[/green] {key}")


@cache_app.command("sweep")
def sweep(ctx: typer.Context) -> None:
    """清除内存层中已过期的条目。"""
    state: State = ctx.obj
    try:
        removed = asyncio.run(_async_sweep(Coordinator(state.config)))
    except PageTransError as e:
        console.print(f"[bold red]❌ 清理失败: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]✅ 清理完成[/green]，共移除 {removed} 个过期条目。")
