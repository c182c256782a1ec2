"""
End-to-end tests against a real PostgreSQL instance.

They verify that:
1. The schema can be created repeatedly
2. Both loaders ingest a CSV completely
3. The Records cube returns the exact count and sum for a known dataset

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
import pytest
from psycopg.conninfo import make_conninfo

from cubeview.loaders.copy import CopyLoader
from cubeview.loaders.insert import InsertLoader
from cubeview.orchestrator import run_load
from cubeview.semantic.executor import QueryExecutor
from cubeview.semantic.model import default_model
from cubeview.storage import schema

SAMPLE_ROWS = 5
SAMPLE_TOTAL = 36.5

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def executor(test_dsn: str) -> QueryExecutor:
    @contextmanager
    def _connect():
        with psycopg.connect(test_dsn) as conn:
            yield conn

    return QueryExecutor(default_model(), connection_provider=_connect, cache_ttl_seconds=0)


class TestSchema:
    def test_create_schema_is_idempotent(self, db_connection: psycopg.Connection):
        schema.create_schema(db_connection)
        schema.create_schema(db_connection)
        assert schema.table_exists(db_connection)


class TestLoaders:
    def test_copy_loads_every_row(self, clean_records_table, db_connection, sample_csv: Path, test_dsn: str):
        result = CopyLoader(dsn_override=test_dsn).load(sample_csv)
        assert result["rows"] == SAMPLE_ROWS
        assert schema.count_rows(db_connection) == SAMPLE_ROWS

    def test_insert_loads_every_row(self, clean_records_table, db_connection, sample_csv: Path, test_dsn: str):
        result = InsertLoader(batch_size=2, dsn_override=test_dsn).load(sample_csv)
        assert result["rows"] == SAMPLE_ROWS
        assert schema.count_rows(db_connection) == SAMPLE_ROWS

    def test_insert_rolls_back_bad_file(self, clean_records_table, db_connection, tmp_path: Path, test_dsn: str):
        path = tmp_path / "bad.csv"
        path.write_text(
            "name,value,timestamp\ncpu,1,2024-01-01T00:00:00Z\ncpu,oops,2024-01-01T00:00:00Z\n",
            encoding="utf-8",
        )
        result = run_load("insert", path, dsn_override=test_dsn)
        assert "oops" in result["error"] or ":3:" in result["error"]
        assert schema.count_rows(db_connection) == 0

    def test_seeded_fixture(self, seeded_db_small: int):
        assert seeded_db_small == 100

    def test_loaders_store_naive_timestamps_as_utc(
        self, clean_records_table, db_connection, tmp_path: Path, test_dsn: str
    ):
        path = tmp_path / "naive.csv"
        path.write_text("name,value,timestamp\ncpu,1,2024-01-01 00:00:00\n", encoding="utf-8")
        # a session zone other than UTC must not shift the stored instant
        dsn = make_conninfo(test_dsn, options="-c timezone=America/New_York")

        CopyLoader(dsn_override=dsn).load(path)
        InsertLoader(dsn_override=dsn).load(path)

        with db_connection.cursor() as cur:
            cur.execute(
                "SELECT \"timestamp\" AT TIME ZONE 'UTC' FROM public.records ORDER BY id"
            )
            rows = [r[0] for r in cur.fetchall()]
        assert rows == [datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 0, 0)]


class TestQueries:
    @pytest.fixture(autouse=True)
    def _loaded(self, clean_records_table, sample_csv: Path, test_dsn: str):
        CopyLoader(dsn_override=test_dsn).load(sample_csv)

    def test_total_count_and_sum(self, executor: QueryExecutor):
        result = executor.load({"measures": ["Records.count", "Records.totalValue"]})
        (row,) = result["data"]
        assert row["Records.count"] == SAMPLE_ROWS
        assert row["Records.totalValue"] == pytest.approx(SAMPLE_TOTAL)

    def test_group_by_name(self, executor: QueryExecutor):
        result = executor.load(
            {
                "measures": ["Records.count", "Records.totalValue"],
                "dimensions": ["Records.name"],
                "order": {"Records.name": "asc"},
            }
        )
        rows = {r["Records.name"]: r for r in result["data"]}
        assert rows["cpu"]["Records.count"] == 3
        assert rows["cpu"]["Records.totalValue"] == pytest.approx(6.5)
        assert rows["mem"]["Records.totalValue"] == pytest.approx(30.0)
        assert sum(r["Records.count"] for r in result["data"]) == SAMPLE_ROWS

    def test_daily_granularity_with_range(self, executor: QueryExecutor):
        result = executor.load(
            {
                "measures": ["Records.totalValue"],
                "timeDimensions": [
                    {
                        "dimension": "Records.timestamp",
                        "granularity": "day",
                        "dateRange": ["2024-01-01", "2024-01-02"],
                    }
                ],
            }
        )
        values = [r["Records.totalValue"] for r in result["data"]]
        assert values == pytest.approx([13.5, 3.0])
        assert result["data"][0]["Records.timestamp.day"].startswith("2024-01-01")

    def test_filter_and_having(self, executor: QueryExecutor):
        result = executor.load(
            {
                "measures": ["Records.count"],
                "dimensions": ["Records.name"],
                "filters": [
                    {"member": "Records.name", "operator": "contains", "values": ["c"]},
                    {"member": "Records.count", "operator": "gte", "values": [2]},
                ],
            }
        )
        assert result["data"] == [{"Records.name": "cpu", "Records.count": 3}]

    def test_dimensions_with_measure_filter(self, executor: QueryExecutor):
        result = executor.load(
            {
                "dimensions": ["Records.name"],
                "filters": [{"member": "Records.count", "operator": "gt", "values": [2]}],
            }
        )
        assert result["data"] == [{"Records.name": "cpu"}]
