"""
Batched INSERT loader.

Validates each row on the client (see csv_reader) and writes batches with
`executemany`. Slower than COPY, but rejects a malformed file before any row
is committed and reports the offending line.
"""

from __future__ import annotations

import time
from itertools import islice
from pathlib import Path
from typing import Iterator, List, Optional

import psycopg

from cubeview.config import get_settings
from cubeview.domain.models import Record
from cubeview.infrastructure.db_factory import get_sync_connection
from cubeview.loaders.abstract import LoadResult, LoadStrategy
from cubeview.loaders.csv_reader import read_csv_records

INSERT_SQL = 'INSERT INTO public.records (name, value, "timestamp") VALUES (%s, %s, %s)'


def _batched(records: Iterator[Record], batch_size: int) -> Iterator[List[Record]]:
    """
    Yield lists of at most `batch_size` records.
    """
    while True:
        batch = list(islice(records, batch_size))
        if not batch:
            break
        yield batch


class InsertLoader(LoadStrategy):
    """
    Validate rows in Python and insert them in batches, single transaction.
    """

    name: str = "insert"
    description: str = "Client-side validation + executemany batches."

    def __init__(self, batch_size: int | None = None, dsn_override: Optional[str] = None) -> None:
        settings = get_settings()
        self.batch_size = batch_size or settings.load_batch_size
        self._dsn_override = dsn_override

    def load(self, csv_path: Path) -> LoadResult:
        start = time.perf_counter()
        rows_loaded = 0
        batches = 0

        if self._dsn_override:
            conn = psycopg.connect(self._dsn_override)
        else:
            conn = get_sync_connection()

        try:
            with conn.cursor() as cur:
                for batch in _batched(read_csv_records(csv_path), self.batch_size):
                    cur.executemany(INSERT_SQL, [record.as_row() for record in batch])
                    rows_loaded += len(batch)
                    batches += 1
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

        duration = time.perf_counter() - start
        throughput = rows_loaded / duration if duration > 0 else 0.0

        return LoadResult(
            rows=rows_loaded,
            duration_seconds=duration,
            throughput_rows_per_sec=throughput,
            peak_rss_bytes=None,
            notes=f"insert batch_size={self.batch_size} batches={batches}",
        )


__all__ = ["INSERT_SQL", "InsertLoader"]
