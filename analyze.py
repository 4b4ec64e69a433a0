import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from modgraph.analyzer import analyze_repository
from modgraph.config import load_options_from_env
from modgraph.models import AnalysisResult
from modgraph.package_analyzer import ConfigError

load_dotenv()
console = Console()

MAX_ROWS = 20


def _configure_logging():
    # 라이브러리는 로그만 남기고, 출력 위치는 여기서 결정
    logger.remove()
    logger.add(sys.stderr, level=os.getenv("MODGRAPH_LOG_LEVEL", "WARNING"))


def _table(title: str, *columns: str) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY, title_justify="left")
    for column in columns:
        table.add_column(column)
    return table


def render_report(result: AnalysisResult, out: Console = console):
    package = result.package
    graph = result.graph
    edge_count = sum(len(n.imports.internal) for n in graph.values())

    out.print(Panel(
        f"[bold]{package.name}[/bold] {package.version}\n"
        f"files: {len(graph)}   internal edges: {edge_count}   "
        f"entry points: {len(result.entry_points)}\n"
        f"pattern: {result.architecture.pattern}   took {result.duration_ms} ms",
        title="📦 Module Graph",
        border_style="cyan",
    ))

    # 1. 순환 의존성
    if result.cycles:
        table = _table(f"🔁 Circular dependencies ({len(result.cycles)})", "#", "cycle")
        for i, cycle in enumerate(result.cycles[:MAX_ROWS], 1):
            table.add_row(str(i), " → ".join(cycle))
        out.print(table)
    else:
        out.print("[green]🔁 No circular dependencies[/green]")

    # 2. 미사용 export
    if result.unused_exports:
        table = _table(f"🧹 Unused exports ({len(result.unused_exports)})", "file", "export", "kind")
        for item in result.unused_exports[:MAX_ROWS]:
            table.add_row(item.file, item.export, item.kind)
        out.print(table)

    # 3. 의존성 감사
    audit = result.dependencies
    table = _table("📚 Dependency audit", "category", "packages")
    table.add_row("unused", ", ".join(audit.unused) or "-")
    table.add_row("unlisted", ", ".join(audit.unlisted) or "-")
    table.add_row("misplaced", ", ".join(audit.misplaced) or "-")
    out.print(table)

    # 4. 공개 심볼 흐름
    if result.export_flows:
        table = _table(f"🧭 Public symbols ({len(result.export_flows)})",
                       "symbol", "defined in", "via", "public from")
        for name, flow in list(sorted(result.export_flows.items()))[:MAX_ROWS]:
            table.add_row(
                name,
                graph.relative(flow.defined_in),
                " → ".join(flow.reexport_chain) or "-",
                ", ".join(flow.public_from),
            )
        out.print(table)

    # 5. 레이어 위반
    violations = result.architecture.violations
    if violations:
        table = _table(f"🏛️ Layer violations ({len(violations)})", "from", "to", "layers")
        for v in violations[:MAX_ROWS]:
            table.add_row(v.source, v.target, f"{v.source_layer} → {v.target_layer}")
        out.print(table)
    else:
        out.print("[green]🏛️ No layer violations[/green]")


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    _configure_logging()

    target_dir = Path(argv[0] if argv else os.getenv("MODGRAPH_ROOT", "."))
    if not target_dir.exists():
        console.print(f"[red]❌ 경로 없음: {target_dir}[/red]")
        return 1

    options = load_options_from_env()
    console.print(f"\n[bold yellow]🔍 Analyzing {target_dir.resolve()}...[/bold yellow]")

    try:
        result = analyze_repository(target_dir, options)
    except ConfigError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1

    render_report(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
