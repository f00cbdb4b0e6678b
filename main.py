"""
Pipeline Editor - Interactive CLI entry point.
Pipeline Editor —— 交互式命令行入口。

A rich console stand-in for the canvas: place nodes from the catalog,
connect them (every connection is validated before it is committed), then
run the pipeline and watch per-node status and the execution log.
用 Rich 控制台代替画布：从目录中放置节点、连线（每条连线提交前都会校验），
然后运行流水线，实时查看每个节点的状态和执行日志。

Usage:
    python main.py              # interactive editor / 交互模式
    python main.py --demo       # build and run a sample linear pipeline / 运行示例流水线
    python main.py --offline    # skip the catalog backend, use default kinds / 不访问后端
    python main.py -v           # debug logging / 调试日志
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import sys
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

import config
from catalog import DEFAULT_NODE_KINDS, CatalogClient, CatalogError
from performers import SimulatedStepPerformer
from pipeline import (
    CyclicOrDisconnectedError,
    InvalidConnectionError,
    PipelineError,
    PipelineExecutor,
    PipelineGraph,
)
from schema import ExecutionLog, NodeKind, PipelineNode, RunResult

console = Console()

# Status -> Rich style mapping
# 节点状态 -> Rich 样式映射
_STATUS_STYLES = {
    "idle": "dim",
    "running": "bold yellow",
    "completed": "green",
    "error": "red",
}

HELP_TEXT = (
    "[cyan]kinds[/cyan]                         list available node kinds\n"
    "[cyan]add[/cyan] <kind> [name]              place a node (kind by number, id or name)\n"
    "[cyan]connect[/cyan] <src> <dst>            connect two nodes (e.g. connect 1 2)\n"
    "[cyan]disconnect[/cyan] <edge-id>           remove an edge\n"
    "[cyan]remove[/cyan] <node>                  remove a node and its edges\n"
    "[cyan]move[/cyan] <node> <x> <y>            move a node on the canvas\n"
    "[cyan]show[/cyan]                           show nodes and edges\n"
    "[cyan]order[/cyan]                          show the execution order\n"
    "[cyan]run[/cyan]                            execute the pipeline\n"
    "[cyan]demo[/cyan]                           replace the graph with a sample pipeline\n"
    "[cyan]quit[/cyan]                           exit"
)


# ======================================================================
# Rendering
# 渲染
# ======================================================================

def _status_label(node: PipelineNode) -> str:
    style = _STATUS_STYLES.get(node.status.value, "white")
    return f"[{style}]{node.status.value}[/{style}]"


def _build_graph_table(graph: PipelineGraph) -> Table:
    """
    Table of nodes with their upstream dependencies.
    节点表格，附带每个节点的上游依赖。
    """
    table = Table(title="Pipeline", border_style="cyan", show_lines=False)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Kind", style="magenta")
    table.add_column("Status")
    table.add_column("Inputs", style="dim")
    for node in graph.nodes:
        inputs = [e.source for e in graph.edges if e.target == node.id]
        table.add_row(
            escape(node.id),
            escape(node.name),
            escape(node.kind),
            _status_label(node),
            escape(", ".join(inputs)) or "-",
        )
    return table


def _build_log_panel(logs: list[ExecutionLog]) -> Panel:
    if not logs:
        body = "[dim italic]No execution logs yet. Type 'run' to run the pipeline.[/dim italic]"
    else:
        lines = []
        for entry in logs:
            ts = datetime.fromtimestamp(entry.timestamp).strftime("%X")
            style = "red" if entry.is_system else "white"
            lines.append(f"[dim]{ts}[/dim] [{style}]{escape(entry.message)}[/{style}]")
        body = "\n".join(lines)
    return Panel(body, title="[bold]Execution Log[/bold]", border_style="blue")


# ======================================================================
# UI Event Handler
# UI 事件处理器
# ======================================================================

def on_event(event: str, data: Any) -> None:
    """
    Print executor events as they happen.
    实时打印执行器事件。"update" 快照事件在运行结束后统一渲染，此处忽略。
    """
    if event == "run_started":
        console.print(f"\n[bold cyan]>>> Running pipeline:[/bold cyan] {escape(' -> '.join(data['order']))}")

    elif event == "node_running":
        node: PipelineNode = data["node"]
        console.print(f"    [yellow]>> {escape(node.id)}:[/yellow] {escape(node.name)} ({escape(node.kind)})")

    elif event == "node_completed":
        node = data["node"]
        console.print(f"    [green]<< {escape(node.id)} completed:[/green] {escape(data['message'])}")

    elif event == "node_failed":
        node = data["node"]
        console.print(f"    [red]<< {escape(node.id)} FAILED:[/red] {escape(data['error'])}")

    elif event == "node_skipped":
        console.print(f"    [dim]-- {escape(data['node_id'])} removed, skipped[/dim]")


# ======================================================================
# Commands
# 命令处理
# ======================================================================

def _resolve_node_id(token: str) -> str:
    """Accept "3" as shorthand for "node-3"."""
    return f"node-{token}" if token.isdigit() else token


def _resolve_kind(token: str, kinds: list[NodeKind]) -> NodeKind | str:
    """
    Match a kind by 1-based number, catalog id or name (case-insensitive).
    Unknown kinds are accepted as-is: the tag is opaque to the engine.
    按序号、目录 ID 或名称（不区分大小写）匹配节点类型；
    未知类型原样接受，kind 对引擎而言是不透明标签。
    """
    if token.isdigit() and 1 <= int(token) <= len(kinds):
        return kinds[int(token) - 1]
    lowered = token.lower()
    for kind in kinds:
        if lowered in (kind.id.lower(), kind.name.lower()):
            return kind
    return token


def build_demo_graph(kinds: list[NodeKind]) -> PipelineGraph:
    """
    Linear sample: Data Source -> Transformer -> Model -> Sink.
    线性示例流水线。
    """
    graph = PipelineGraph()
    previous: PipelineNode | None = None
    for i, kind in enumerate(kinds[:4]):
        node = graph.add_node(kind, position=(i * 200.0, 100.0))
        if previous is not None:
            graph.connect(previous.id, node.id)
        previous = node
    return graph


async def run_pipeline(graph: PipelineGraph, executor: PipelineExecutor) -> RunResult | None:
    """
    Run the graph and report the outcome. Rejected run-starts are reported
    separately from runs that failed mid-way.
    运行流水线并报告结果。运行被拒绝（空图 / 成环）与运行中途失败分开提示。
    """
    try:
        result = await executor.run(graph.nodes, graph.edges)
    except CyclicOrDisconnectedError as exc:
        console.print(f"[bold red]Run rejected:[/bold red] {escape(str(exc))} ({escape(', '.join(exc.unscheduled))})")
        return None
    except PipelineError as exc:
        console.print(f"[bold red]Run rejected:[/bold red] {escape(str(exc))}")
        return None

    console.print(_build_graph_table(graph))
    console.print(_build_log_panel(result.logs))
    if result.success:
        console.print("[bold green]Pipeline completed.[/bold green]")
    else:
        console.print(f"[bold red]Pipeline failed at {escape(result.failed_node_id or '')}.[/bold red]")
    return result


async def handle_command(
    line: str,
    graph: PipelineGraph,
    executor: PipelineExecutor,
    kinds: list[NodeKind],
) -> PipelineGraph:
    """
    Execute one REPL command and return the (possibly replaced) graph.
    执行一条 REPL 命令，返回（可能被替换的）图对象。
    """
    try:
        parts = shlex.split(line)
    except ValueError as exc:
        console.print(f"[red]Parse error: {escape(str(exc))}[/red]")
        return graph
    if not parts:
        return graph
    cmd, args = parts[0].lower(), parts[1:]

    if cmd == "help":
        console.print(Panel(HELP_TEXT, title="Commands", border_style="blue"))

    elif cmd == "kinds":
        for i, kind in enumerate(kinds, 1):
            console.print(f"  [cyan]{i}.[/cyan] {escape(kind.name)} [dim]({escape(kind.id)})[/dim]")

    elif cmd == "add" and args:
        kind = _resolve_kind(args[0], kinds)
        name = " ".join(args[1:]) or None
        node = graph.add_node(kind, position=(len(graph.nodes) * 200.0, 100.0), name=name)
        console.print(f"[green]Added {escape(node.id)}[/green] '{escape(node.name)}' ({escape(node.kind)})")

    elif cmd == "connect" and len(args) >= 2:
        try:
            edge = graph.connect(_resolve_node_id(args[0]), _resolve_node_id(args[1]))
        except InvalidConnectionError as exc:
            console.print(f"[yellow]Connection rejected ({exc.check.reason.value}):[/yellow] {escape(str(exc))}")
        else:
            console.print(f"[green]Connected[/green] {escape(edge.source)} -> {escape(edge.target)} [dim]({escape(edge.id)})[/dim]")

    elif cmd == "disconnect" and args:
        if not graph.remove_edge(args[0]):
            console.print(f"[red]No edge '{escape(args[0])}'[/red]")

    elif cmd == "remove" and args:
        if not graph.remove_node(_resolve_node_id(args[0])):
            console.print(f"[red]No node '{escape(args[0])}'[/red]")

    elif cmd == "move" and len(args) == 3:
        try:
            x, y = float(args[1]), float(args[2])
        except ValueError:
            console.print("[red]Coordinates must be numbers[/red]")
            return graph
        if not graph.move_node(_resolve_node_id(args[0]), x, y):
            console.print(f"[red]No node '{escape(args[0])}'[/red]")

    elif cmd == "show":
        console.print(_build_graph_table(graph))
        console.print(f"  [dim]{escape(graph.summary())}[/dim]")

    elif cmd == "order":
        try:
            console.print(escape(" -> ".join(graph.execution_order())) or "[dim](empty)[/dim]")
        except CyclicOrDisconnectedError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")

    elif cmd == "run":
        await run_pipeline(graph, executor)

    elif cmd == "demo":
        graph = build_demo_graph(kinds)
        console.print(_build_graph_table(graph))

    else:
        console.print(f"[red]Unknown or incomplete command: {escape(line)}[/red] (type 'help')")

    return graph


# ======================================================================
# Main
# 主函数
# ======================================================================

def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging with rich handler.
    使用 Rich 处理器配置日志系统，同时抑制 httpx/httpcore 的低优先级日志。
    """
    level = logging.DEBUG if verbose else config.LOG_LEVEL
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def load_node_kinds(offline: bool = False) -> list[NodeKind]:
    """
    Fetch the catalog once; fall back to the default kinds on failure.
    读取一次节点目录；失败时退回默认节点类型。
    """
    if offline:
        return list(DEFAULT_NODE_KINDS)
    try:
        return await CatalogClient().fetch_node_types()
    except CatalogError as exc:
        logging.getLogger(__name__).warning("%s. Using default node kinds.", exc)
        return list(DEFAULT_NODE_KINDS)


async def run_interactive(kinds: list[NodeKind]) -> None:
    """
    Interactive editing loop.
    交互式编辑循环。
    """
    console.print(Panel(
        "[bold]Pipeline Editor[/bold] - build a pipeline graph and run it in dependency order\n\n"
        "Type [bold]help[/bold] for commands, [bold]demo[/bold] for a sample pipeline, "
        "[bold]quit[/bold] to exit.",
        title="[bold blue]Welcome[/bold blue]",
        border_style="blue",
    ))

    graph = PipelineGraph()
    executor = PipelineExecutor(performer=SimulatedStepPerformer(), on_event=on_event)

    while True:
        console.print()
        try:
            line = console.input("[bold blue]pipeline > [/bold blue]").strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not line:
            continue
        if line.lower() in ("quit", "exit", "q"):
            console.print("[dim]Goodbye![/dim]")
            break

        graph = await handle_command(line, graph, executor, kinds)


async def run_demo(kinds: list[NodeKind]) -> None:
    graph = build_demo_graph(kinds)
    executor = PipelineExecutor(performer=SimulatedStepPerformer(), on_event=on_event)
    await run_pipeline(graph, executor)


async def _main(demo: bool, offline: bool) -> None:
    kinds = await load_node_kinds(offline)
    if demo:
        await run_demo(kinds)
    else:
        await run_interactive(kinds)


def main() -> None:
    """
    程序入口：解析命令行参数，决定运行模式。
    - --demo：运行示例流水线后退出
    - --offline：不访问目录后端
    - -v / --verbose：启用调试日志
    """
    verbose = "--verbose" in sys.argv or "-v" in sys.argv
    setup_logging(verbose)
    asyncio.run(_main(demo="--demo" in sys.argv, offline="--offline" in sys.argv))


if __name__ == "__main__":
    main()
