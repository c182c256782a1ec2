"""
Query execution against PostgreSQL.

`QueryExecutor.load()` is the single entry point used by the API and the
CLI: parse → compile → run (or serve from the TTL cache) → JSON-ready rows.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, ContextManager, Dict, Generator, List, Optional, Tuple

import psycopg
from psycopg.rows import dict_row

from cubeview.config import get_settings
from cubeview.infrastructure.db_factory import PoolManager, apply_statement_timeout
from cubeview.semantic.compiler import CompiledQuery, compile_query
from cubeview.semantic.model import DataModel
from cubeview.semantic.query import Query, parse_query
from cubeview.utils.logging import get_logger

log = get_logger(__name__)

ConnectionProvider = Callable[[], ContextManager[psycopg.Connection]]


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class ResultCache:
    """
    Small thread-safe TTL cache keyed by compiled SQL and parameters.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 256) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[Tuple[Any, ...], Tuple[float, List[Dict[str, Any]]]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: Tuple[Any, ...]) -> Optional[List[Dict[str, Any]]]:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, rows = entry
            if time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return rows

    def put(self, key: Tuple[Any, ...], rows: List[Dict[str, Any]]) -> None:
        if not self.enabled:
            return
        with self._lock:
            if len(self._entries) >= self.max_entries:
                # drop the oldest entry
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                del self._entries[oldest]
            self._entries[key] = (time.monotonic(), rows)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class QueryExecutor:
    """
    Compile and run queries for one data model.

    Parameters
    ----------
    model : DataModel
        Model queries are resolved against.
    connection_provider : callable, optional
        Returns a context manager yielding a psycopg connection. Defaults to
        the shared pool (`PoolManager().sync_connection`).
    cache_ttl_seconds : float, optional
        Result cache lifetime; 0 disables caching. Defaults to settings.
    """

    def __init__(
        self,
        model: DataModel,
        connection_provider: Optional[ConnectionProvider] = None,
        cache_ttl_seconds: Optional[float] = None,
        statement_timeout_ms: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.model = model
        self._connection_provider = connection_provider or PoolManager().sync_connection
        ttl = settings.query_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        self.cache = ResultCache(ttl)
        self.statement_timeout_ms = (
            settings.db_statement_timeout_ms if statement_timeout_ms is None else statement_timeout_ms
        )

    @contextmanager
    def _connection(self) -> Generator[psycopg.Connection, None, None]:
        with self._connection_provider() as conn:
            yield conn

    def compile(self, query: Query | Dict[str, Any] | str) -> CompiledQuery:
        return compile_query(self.model, parse_query(query))

    def run(self, compiled: CompiledQuery) -> List[Dict[str, Any]]:
        """
        Execute a compiled query and return JSON-ready rows keyed by alias.
        """
        key = compiled.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            log.debug("Query served from cache", extra={"rows": len(cached)})
            return cached

        start = time.perf_counter()
        with self._connection() as conn:
            with conn.transaction():
                with conn.cursor(row_factory=dict_row) as cur:
                    apply_statement_timeout(cur, self.statement_timeout_ms)
                    cur.execute(compiled.sql, compiled.params)
                    raw_rows = cur.fetchall()
        duration_ms = (time.perf_counter() - start) * 1000

        rows = [{k: _json_value(v) for k, v in row.items()} for row in raw_rows]
        self.cache.put(key, rows)
        log.info(
            "Query executed",
            extra={"rows": len(rows), "duration_ms": round(duration_ms, 2)},
        )
        return rows

    def load(self, query: Query | Dict[str, Any] | str) -> Dict[str, Any]:
        """
        Parse, compile and run `query`.

        Returns
        -------
        dict
            `{"query": <normalised query>, "data": [...], "annotation": {...}}`
        """
        parsed = parse_query(query)
        compiled = compile_query(self.model, parsed)
        data = self.run(compiled)
        return {
            "query": parsed.to_json_dict(),
            "data": data,
            "annotation": compiled.annotation(),
        }

    def ping(self) -> bool:
        """Run `SELECT 1`; used by the readiness probe."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                row = cur.fetchone()
        return bool(row and row[0] == 1)


__all__ = ["QueryExecutor", "ResultCache"]
