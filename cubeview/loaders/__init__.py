"""
Loaders package for cubeview.

Re-exports the load strategy contracts and the concrete CSV loaders so
downstream code can import from `cubeview.loaders` directly.
"""

from cubeview.loaders.abstract import AbstractLoadStrategy, LoadResult, LoadStrategy
from cubeview.loaders.copy import CopyLoader
from cubeview.loaders.csv_reader import read_csv_records, read_header
from cubeview.loaders.insert import InsertLoader

__all__ = [
    # Abstracts
    "AbstractLoadStrategy",
    "LoadResult",
    "LoadStrategy",
    # Concrete loaders
    "CopyLoader",
    "InsertLoader",
    # Parsing
    "read_csv_records",
    "read_header",
]
