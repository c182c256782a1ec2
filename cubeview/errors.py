"""
Exception hierarchy for cubeview.

Each layer raises its own subclass so callers (CLI, API) can map failures to
exit codes or HTTP status codes without inspecting messages.
"""

from __future__ import annotations


class CubeviewError(Exception):
    """Base class for all cubeview errors."""


class ModelError(CubeviewError):
    """The data model file is missing or invalid."""


class QueryError(CubeviewError):
    """A query references unknown members or is otherwise malformed."""


class IngestError(CubeviewError):
    """A CSV file could not be parsed into records."""


class ClientError(CubeviewError):
    """The query API returned an error response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = ["CubeviewError", "ModelError", "QueryError", "IngestError", "ClientError"]
