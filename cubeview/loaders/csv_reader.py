"""
CSV parsing for record files.

The file must carry a header naming `name`, `value` and `timestamp` (any
order). Rows are validated into `Record` instances; the first bad row stops
the read with an IngestError naming its line number.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterator, List

from pydantic import ValidationError

from cubeview.domain.models import CSV_COLUMNS, Record
from cubeview.errors import IngestError


def read_header(csv_path: Path) -> List[str]:
    """
    Return the normalised header of `csv_path`, validated against CSV_COLUMNS.
    """
    with csv_path.open("r", newline="", encoding="utf-8") as f:
        header = next(csv.reader(f), None)
    if not header:
        raise IngestError(f"{csv_path}: file is empty")

    columns = [col.strip().lower() for col in header]
    missing = [col for col in CSV_COLUMNS if col not in columns]
    unexpected = [col for col in columns if col not in CSV_COLUMNS]
    if missing or unexpected:
        raise IngestError(
            f"{csv_path}: header must be {', '.join(CSV_COLUMNS)} "
            f"(missing={missing or '-'}, unexpected={unexpected or '-'})"
        )
    return columns


def read_csv_records(csv_path: Path) -> Iterator[Record]:
    """
    Yield one validated Record per data row.
    """
    columns = read_header(csv_path)
    with csv_path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader)
        # header is line 1
        for line_no, row in enumerate(reader, start=2):
            if not row or all(not cell.strip() for cell in row):
                continue
            if len(row) != len(columns):
                raise IngestError(
                    f"{csv_path}:{line_no}: expected {len(columns)} fields, got {len(row)}"
                )
            try:
                yield Record(**dict(zip(columns, row)))
            except ValidationError as exc:
                raise IngestError(f"{csv_path}:{line_no}: {exc.errors()[0]['msg']}") from exc


__all__ = ["read_csv_records", "read_header"]
