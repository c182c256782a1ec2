from __future__ import annotations

from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.table import Table


def _format_cell(value: Any) -> str:
    if value is None:
        return "∅"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:,}"
    return str(value)


def print_result(result: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Render a load response (`{"data": ..., "annotation": ...}`) as a rich table.

    Columns follow the annotation order: time dimensions, dimensions, measures.
    """
    console = console or Console()
    data = result.get("data") or []
    annotation = result.get("annotation") or {}

    if not data:
        console.print("[yellow]Query returned no rows.[/yellow]")
        return

    table = Table(box=box.ROUNDED, caption=f"{len(data):,} row(s)")
    aliases = []
    for group, style in (("timeDimensions", "cyan"), ("dimensions", "cyan"), ("measures", "green")):
        for alias, meta in annotation.get(group, {}).items():
            justify = "right" if group == "measures" else "left"
            table.add_column(meta.get("title", alias), style=style, justify=justify, no_wrap=True)
            aliases.append(alias)

    # responses without annotation: fall back to the row keys
    if not aliases:
        aliases = list(data[0].keys())
        for alias in aliases:
            table.add_column(alias)

    for row in data:
        table.add_row(*(_format_cell(row.get(alias)) for alias in aliases))

    console.print(table)


def print_load_summary(result: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Render one ingestion run as a rich table.
    """
    console = console or Console()

    table = Table(title="CSV Load", box=box.ROUNDED)
    table.add_column("Loader", style="cyan", no_wrap=True)
    table.add_column("Rows", justify="right", style="magenta")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Throughput (rows/s)", justify="right", style="bold green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")

    mem_bytes = result.get("peak_rss_bytes") or 0
    table.add_row(
        result.get("loader", "Unknown"),
        f"{result.get('rows', 0):,}",
        f"{result.get('duration_seconds', 0.0):.2f}",
        f"{result.get('throughput_rows_per_sec', 0.0):,.2f}",
        f"{mem_bytes / (1024 * 1024):.2f}",
    )
    console.print(table)

    if result.get("error"):
        console.print(f"[red]Load failed:[/red] {result['error']}")
    elif result.get("notes"):
        console.print(f"[dim]{result['notes']}[/dim]")
