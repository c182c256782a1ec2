from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn, Optional

import psycopg
import typer

from cubeview.charts import CHART_TYPES, CubeClient, ResultSet, build_figure, save_html
from cubeview.config import get_settings
from cubeview.errors import CubeviewError
from cubeview.infrastructure.db_factory import get_sync_connection
from cubeview.orchestrator import available_loaders, run_load
from cubeview.reporter import print_load_summary, print_result
from cubeview.sample import write_csv
from cubeview.semantic import QueryExecutor, get_model
from cubeview.storage import schema
from cubeview.utils.logging import configure_logging

app = typer.Typer(help="cubeview: CSV -> PostgreSQL -> query API -> charts.")


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"API={settings.api_host}:{settings.api_port} | "
        f"model={settings.model_path or 'built-in'} | "
        f"limit={settings.query_default_limit}/{settings.query_max_limit} "
        f"cache_ttl={settings.query_cache_ttl_seconds}s"
    )


@app.command("init-db")
def init_db(
    truncate: bool = typer.Option(False, "--truncate", help="Empty the table after creating it."),
) -> None:
    """
    Create the records table and its indexes.
    """
    _setup_logging()
    conn = get_sync_connection()
    try:
        schema.create_schema(conn)
        if truncate:
            schema.truncate(conn)
        rows = schema.count_rows(conn)
    finally:
        conn.close()
    typer.echo(f"Schema ready ({rows:,} rows in public.records).")


@app.command()
def generate(
    output: Path = typer.Argument(..., help="CSV file to write."),
    rows: int = typer.Option(1_000, "--rows", "-r", help="Number of rows to generate."),
    days: int = typer.Option(30, "--days", help="Spread timestamps over this many days."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
) -> None:
    """
    Write a deterministic sample CSV (name,value,timestamp).
    """
    written = write_csv(output, rows=rows, seed=seed, days=days)
    typer.echo(f"Wrote {written:,} rows -> {output}")


@app.command()
def load(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV file to load."),
    strategy: str = typer.Option(
        "copy",
        "--strategy",
        "-s",
        help=f"Loader to use ({', '.join(available_loaders())}).",
    ),
    truncate: bool = typer.Option(False, "--truncate", help="Empty the table before loading."),
) -> None:
    """
    Load a CSV file into the records table.
    """
    _setup_logging()
    try:
        result = run_load(strategy, csv_path, truncate_first=truncate)
    except (ValueError, psycopg.Error) as exc:
        _fail(exc)
    print_load_summary(result)
    if result.get("error"):
        raise typer.Exit(code=1)


@app.command()
def query(
    query_json: str = typer.Argument(..., help="Query as JSON."),
    sql: bool = typer.Option(False, "--sql", help="Print the compiled SQL instead of running it."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw load response."),
) -> None:
    """
    Compile and run a query directly against the database.
    """
    _setup_logging()
    settings = get_settings()
    try:
        executor = QueryExecutor(get_model(settings.model_path), cache_ttl_seconds=0)
        if sql:
            compiled = executor.compile(query_json)
            typer.echo(compiled.sql)
            typer.echo(f"-- params: {compiled.params!r}")
            return
        result = executor.load(query_json)
    except (CubeviewError, psycopg.Error) as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps(result, indent=2))
    else:
        print_result(result)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default API_HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default API_PORT)."),
) -> None:
    """
    Run the query API with uvicorn.
    """
    import uvicorn

    from cubeview.api import create_app

    _setup_logging()
    settings = get_settings()
    try:
        api = create_app()
    except CubeviewError as exc:
        _fail(exc)
    uvicorn.run(api, host=host or settings.api_host, port=port or settings.api_port, log_config=None)


@app.command()
def chart(
    query_json: str = typer.Argument(..., help="Query as JSON."),
    chart_type: str = typer.Option("line", "--type", "-t", help=f"One of {', '.join(CHART_TYPES)}."),
    output: Path = typer.Option(Path("chart.html"), "--output", "-o", help="HTML file to write."),
    title: Optional[str] = typer.Option(None, "--title", help="Chart title."),
    api: Optional[str] = typer.Option(
        None,
        "--api",
        help="Query API base URL. When omitted the query runs directly against the database.",
    ),
) -> None:
    """
    Run a query and render the result as a standalone HTML chart.
    """
    _setup_logging()
    settings = get_settings()
    try:
        if api:
            result = CubeClient(api).load(query_json)
        else:
            executor = QueryExecutor(get_model(settings.model_path), cache_ttl_seconds=0)
            result = ResultSet(executor.load(query_json))
        fig = build_figure(result, chart_type=chart_type, title=title)
    except (CubeviewError, psycopg.Error, ValueError) as exc:
        _fail(exc)

    path = save_html(fig, output)
    typer.echo(f"{chart_type} chart ({len(result):,} rows) -> {path}")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
