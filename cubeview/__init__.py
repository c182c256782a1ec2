"""
cubeview - charts over a PostgreSQL table through a declarative query API.

The package wires three stages together:

- Ingestion of flat CSV files into a `records` table (bulk COPY or batched INSERT)
- A declarative data model (cubes, measures, dimensions) compiled to SQL and
  served over HTTP
- Chart rendering of query results with plotly

Aggregation is executed by the database; cubeview only compiles the model
into SQL and moves results between the stages.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from cubeview.config import Settings, get_settings
from cubeview.errors import ClientError, CubeviewError, IngestError, ModelError, QueryError
from cubeview.orchestrator import available_loaders, run_load
from cubeview.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "ClientError",
    "CubeviewError",
    "IngestError",
    "ModelError",
    "QueryError",
    # Ingestion
    "available_loaders",
    "run_load",
    # Logging
    "configure_logging",
    "get_logger",
]
