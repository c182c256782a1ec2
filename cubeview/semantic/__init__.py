"""
Semantic layer for cubeview: the declarative data model, the query format,
the SQL compiler and the executor.
"""

from cubeview.semantic.compiler import Column, CompiledQuery, compile_query
from cubeview.semantic.executor import QueryExecutor, ResultCache
from cubeview.semantic.model import (
    Cube,
    DataModel,
    Dimension,
    Measure,
    default_model,
    get_model,
    load_model,
)
from cubeview.semantic.query import Filter, Query, TimeDimension, parse_query

__all__ = [
    "Column",
    "CompiledQuery",
    "Cube",
    "DataModel",
    "Dimension",
    "Filter",
    "Measure",
    "Query",
    "QueryExecutor",
    "ResultCache",
    "TimeDimension",
    "compile_query",
    "default_model",
    "get_model",
    "load_model",
    "parse_query",
]
