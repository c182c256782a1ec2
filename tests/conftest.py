"""
Pytest configuration for cubeview.

Provides fixtures for:
- Database connection management (integration tests)
- Schema setup and table cleanup
- Small sample CSV files and seeded tables
- A fake connection provider for executor/API unit tests
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import psycopg
import pytest

from cubeview.config import Settings
from cubeview.sample import write_csv
from cubeview.storage import schema


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "cubeview"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the records table exists.
    """
    schema.create_schema(db_connection)
    return True


@pytest.fixture(scope="function")
def clean_records_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the records table before and after each test function.
    """
    schema.truncate(db_connection)
    yield
    schema.truncate(db_connection)


@pytest.fixture
def sample_csv(tmp_path: Path) -> Path:
    """
    Hand-written CSV with known totals:
    3 rows for cpu (sum 6.5), 2 rows for mem (sum 30), 5 rows overall.
    """
    path = tmp_path / "records.csv"
    path.write_text(
        "name,value,timestamp\n"
        "cpu,1.5,2024-01-01T00:00:00+00:00\n"
        "cpu,2,2024-01-01T12:00:00+00:00\n"
        "mem,10,2024-01-01T18:00:00+00:00\n"
        "cpu,3,2024-01-02T06:00:00+00:00\n"
        "mem,20,2024-01-03T00:00:00+00:00\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture(scope="function")
def seeded_db_small(clean_records_table, test_dsn: str, tmp_path: Path) -> int:
    """
    Seed 100 generated rows with COPY. Returns the number of rows seeded.
    """
    from cubeview.loaders.copy import CopyLoader

    csv_path = tmp_path / "seed.csv"
    write_csv(csv_path, rows=100, seed=42, days=10)
    result = CopyLoader(dsn_override=test_dsn).load(csv_path)
    return result["rows"]


class FakeCursor:
    """Records executed statements and replays canned rows."""

    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb

    def execute(self, sql: str, params: Optional[List[Any]] = None) -> None:
        if self._conn.fail_with is not None and not sql.startswith("SET LOCAL"):
            raise self._conn.fail_with
        self._conn.executed.append((sql, list(params) if params is not None else None))

    def fetchall(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._conn.rows]

    def fetchone(self):
        return (1,)


class FakeConnection:
    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None) -> None:
        self.rows = rows or []
        self.executed: List[tuple] = []
        self.fail_with: Optional[Exception] = None

    @contextmanager
    def transaction(self):
        yield

    def cursor(self, row_factory=None) -> FakeCursor:
        del row_factory
        return FakeCursor(self)


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def connection_provider(fake_connection: FakeConnection):
    @contextmanager
    def _provide():
        yield fake_connection

    return _provide
