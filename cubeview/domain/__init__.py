"""
Domain package for cubeview.

Exports the record model shared by ingestion and the sample data generator.
"""

from cubeview.domain.models import CSV_COLUMNS, Record

__all__ = [
    "CSV_COLUMNS",
    "Record",
]
