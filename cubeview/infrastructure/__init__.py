"""
Infrastructure package for cubeview.

Centralizes database connectivity concerns (connection factory, pooling).
Keep this layer focused on I/O and resource management, decoupled from
ingestion and query logic.
"""

from cubeview.infrastructure.db_factory import (
    PoolManager,
    apply_statement_timeout,
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)

__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
    "get_sync_pool",
]
