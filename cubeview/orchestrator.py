"""
Orchestrator for CSV ingestion runs.

Resolves a load strategy by name, optionally prepares the table, profiles the
load and returns a flat result dict for the reporter.

Usage (example from CLI):
    from cubeview.orchestrator import run_load

    result = run_load("copy", Path("records.csv"), truncate_first=True)
    print(result["rows"])
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

from cubeview.infrastructure.db_factory import get_sync_connection
from cubeview.loaders.abstract import LoadResult, LoadStrategy
from cubeview.loaders.copy import CopyLoader
from cubeview.loaders.insert import InsertLoader
from cubeview.storage import schema
from cubeview.utils.logging import get_logger
from cubeview.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _loader_factories(dsn_override: Optional[str] = None) -> Dict[str, Callable[[], LoadStrategy]]:
    """Registry of available loaders."""
    return {
        "copy": lambda: CopyLoader(dsn_override=dsn_override),
        "insert": lambda: InsertLoader(dsn_override=dsn_override),
    }


def available_loaders() -> List[str]:
    """List available loader names."""
    return sorted(_loader_factories().keys())


def _resolve_loader(name: str, dsn_override: Optional[str] = None) -> LoadStrategy:
    factories = _loader_factories(dsn_override)
    if name not in factories:
        raise ValueError(f"Unknown loader '{name}'. Available: {', '.join(sorted(factories))}")
    return factories[name]()


def _merge_result(result: LoadResult, stats: ProfileStats) -> dict:
    """
    Merge a loader result with profiler stats.

    The profiler's wall time wins over the loader's own timing since it also
    covers connection setup; throughput is recomputed from it.
    """
    merged = dict(result)
    merged.setdefault("rows", 0)
    merged["duration_seconds"] = _round_float(stats.duration_seconds)
    merged["throughput_rows_per_sec"] = (
        _round_float(merged["rows"] / stats.duration_seconds) if stats.duration_seconds else 0.0
    )
    if merged.get("peak_rss_bytes") is None:
        merged["peak_rss_bytes"] = stats.peak_rss_bytes
    if merged.get("cpu_percent") is None and stats.cpu_percent is not None:
        merged["cpu_percent"] = _round_float(stats.cpu_percent, 1)
    return merged


def _prepare_table(dsn_override: Optional[str], truncate_first: bool) -> None:
    conn = get_sync_connection(dsn_override)
    try:
        schema.create_schema(conn)
        if truncate_first:
            schema.truncate(conn)
    finally:
        conn.close()


def _profiled_load(loader: LoadStrategy, csv_path: Path) -> dict:
    log.info(f"[LOAD START] {loader.name}", extra={"loader": loader.name, "path": str(csv_path)})
    with profile_block(loader.name) as stats:
        try:
            result = loader.load(csv_path)
            log.info(
                f"[LOAD SUCCESS] {loader.name}",
                extra={"loader": loader.name, "rows": result.get("rows")},
            )
        except Exception as exc:  # noqa: BLE001 - failures are reported in the result
            log.exception(f"[LOAD FAILED] {loader.name}", extra={"loader": loader.name})
            result = LoadResult(error=str(exc), rows=0, duration_seconds=0.0)

    return _merge_result(result, stats)


def run_load(
    loader_name: str,
    csv_path: Path | str,
    truncate_first: bool = False,
    prepare: bool = True,
    dsn_override: Optional[str] = None,
) -> dict:
    """
    Load one CSV file into the records table.

    Parameters
    ----------
    loader_name : str
        "copy" or "insert" (see `available_loaders()`).
    csv_path : Path | str
        File to load.
    truncate_first : bool
        Empty the table before loading.
    prepare : bool
        Create the schema if it does not exist yet.
    dsn_override : str | None
        Connection string to use instead of the configured one.

    Returns
    -------
    dict
        Loader metrics merged with profiler stats; `error` is set when the
        load failed.
    """
    path = Path(csv_path)
    loader = _resolve_loader(loader_name, dsn_override)

    if prepare or truncate_first:
        _prepare_table(dsn_override, truncate_first)

    result = _profiled_load(loader, path)
    result["loader"] = loader.name
    result["path"] = str(path)
    return result


__all__ = [
    "available_loaders",
    "run_load",
]
