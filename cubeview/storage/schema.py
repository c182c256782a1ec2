"""
Schema helpers for the `records` table.

All statements run on a caller-supplied psycopg connection and commit on
success; the caller owns the connection lifecycle.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import psycopg

from cubeview.utils.logging import get_logger

log = get_logger(__name__)

INIT_SQL_PATH = Path(__file__).with_name("init.sql")
RECORDS_TABLE = "records"


def create_schema(conn: psycopg.Connection, path: Optional[Path] = None) -> None:
    """
    Execute the DDL script (idempotent, `IF NOT EXISTS` everywhere).
    """
    sql_path = path or INIT_SQL_PATH
    ddl = sql_path.read_text(encoding="utf-8")
    with conn.cursor() as cur:
        cur.execute(ddl)
    conn.commit()
    log.info("Schema ready", extra={"script": str(sql_path)})


def table_exists(conn: psycopg.Connection, table: str = RECORDS_TABLE) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = %s
            );
            """,
            (table,),
        )
        row = cur.fetchone()
    return bool(row and row[0])


def truncate(conn: psycopg.Connection) -> None:
    """Remove all rows and reset the id sequence."""
    with conn.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.records RESTART IDENTITY;")
    conn.commit()
    log.info("Table truncated", extra={"table": RECORDS_TABLE})


def count_rows(conn: psycopg.Connection) -> int:
    with conn.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM public.records;")
        row = cur.fetchone()
    return int(row[0]) if row else 0


__all__ = ["INIT_SQL_PATH", "RECORDS_TABLE", "count_rows", "create_schema", "table_exists", "truncate"]
