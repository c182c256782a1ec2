"""
Sample data script for cubeview.

Generates a deterministic `name,value,timestamp` CSV and, unless --no-load is
given, loads it into Postgres with COPY.
"""

from __future__ import annotations

import sys
import tempfile
import time
from pathlib import Path

import typer

from cubeview.config import get_settings
from cubeview.orchestrator import run_load
from cubeview.reporter import print_load_summary
from cubeview.sample import write_csv
from cubeview.utils.logging import configure_logging

app = typer.Typer(help="Generate sample records and load them into Postgres (CSV + COPY).")


@app.command()
def main(
    rows: int = typer.Option(
        10_000,
        "--rows",
        "-r",
        help="Number of rows to generate.",
    ),
    days: int = typer.Option(
        30,
        "--days",
        help="Spread timestamps over this many days.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    truncate: bool = typer.Option(
        False,
        "--truncate",
        help="Empty the records table before loading.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate sample data and optionally load it into Postgres using COPY.
    """
    configure_logging(level=get_settings().log_level)
    start = time.perf_counter()
    if output:
        csv_path = output
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="cubeview_csv_"))
        csv_path = tmpdir / "records.csv"

    typer.echo(f"Generating {rows:,} rows -> {csv_path} (days={days}, seed={seed})")
    write_csv(csv_path, rows=rows, seed=seed, days=days)
    gen_duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {gen_duration:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    result = run_load("copy", csv_path, truncate_first=truncate, dsn_override=dsn)
    print_load_summary(result)
    if result.get("error"):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
