"""
Deterministic sample data for demos and tests.

Rows are spread evenly over `days` starting at `start`, with a seeded RNG so
the same arguments always produce the same file.
"""

from __future__ import annotations

import csv
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from cubeview.domain.models import CSV_COLUMNS, Record

DEFAULT_NAMES: Sequence[str] = ("alpha", "beta", "gamma", "delta")
DEFAULT_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def generate_records(
    rows: int,
    seed: int = 42,
    names: Sequence[str] = DEFAULT_NAMES,
    start: Optional[datetime] = None,
    days: int = 30,
) -> Iterator[Record]:
    rng = random.Random(seed)
    origin = start or DEFAULT_START
    span = timedelta(days=days).total_seconds()
    step = span / rows if rows else 0.0
    for i in range(rows):
        yield Record(
            name=rng.choice(list(names)),
            value=f"{rng.uniform(1, 1_000):.2f}",
            timestamp=origin + timedelta(seconds=int(i * step)),
        )


def write_csv(
    csv_path: Path,
    rows: int,
    batch_size: int = 10_000,
    seed: int = 42,
    days: int = 30,
) -> int:
    """
    Write `rows` sample records to `csv_path` with a `name,value,timestamp`
    header. Returns the number of data rows written.
    """
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)

        buffer: List[List[str]] = []
        for record in generate_records(rows, seed=seed, days=days):
            buffer.append([record.name, f"{record.value}", record.timestamp.isoformat()])
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                written += len(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)
            written += len(buffer)
    return written


__all__ = ["DEFAULT_NAMES", "DEFAULT_START", "generate_records", "write_csv"]
