"""
Bulk-copy loader: stream the CSV file straight into `COPY ... FROM STDIN`.

The database parses and converts every field; only the header is checked on
the client so the COPY column list matches the file's column order. The
session runs in UTC so timestamps without an offset land as UTC instants.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

import psycopg

from cubeview.infrastructure.db_factory import get_sync_connection
from cubeview.loaders.abstract import LoadResult, LoadStrategy
from cubeview.loaders.csv_reader import read_header

_COPY_CHUNK_BYTES = 1 << 16


class CopyLoader(LoadStrategy):
    """
    Load a CSV file with PostgreSQL's COPY protocol in a single transaction.
    """

    name: str = "copy"
    description: str = "COPY FROM STDIN (FORMAT csv, HEADER TRUE), single transaction."

    def __init__(self, dsn_override: Optional[str] = None) -> None:
        self._dsn_override = dsn_override

    def load(self, csv_path: Path) -> LoadResult:
        columns = read_header(csv_path)
        column_list = ", ".join(f'"{col}"' for col in columns)
        statement = (
            f"COPY public.records ({column_list}) "
            "FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
        )

        start = time.perf_counter()
        if self._dsn_override:
            conn = psycopg.connect(self._dsn_override)
        else:
            conn = get_sync_connection()

        try:
            with conn.cursor() as cur:
                # naive timestamps are UTC, same as Record
                cur.execute("SET TIME ZONE 'UTC'")
                with cur.copy(statement) as copy:
                    with csv_path.open("rb") as f:
                        while chunk := f.read(_COPY_CHUNK_BYTES):
                            copy.write(chunk)
                rows_loaded = cur.rowcount
            conn.commit()
        finally:
            conn.close()

        duration = time.perf_counter() - start
        throughput = rows_loaded / duration if duration > 0 else 0.0

        return LoadResult(
            rows=rows_loaded,
            duration_seconds=duration,
            throughput_rows_per_sec=throughput,
            peak_rss_bytes=None,
            notes=f"COPY columns=({', '.join(columns)})",
        )


__all__ = ["CopyLoader"]
