"""
Storage package for cubeview: DDL and housekeeping for the records table.
"""

from cubeview.storage.schema import count_rows, create_schema, table_exists, truncate

__all__ = ["count_rows", "create_schema", "table_exists", "truncate"]
