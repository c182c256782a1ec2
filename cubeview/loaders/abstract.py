"""
Abstract load strategy interfaces and result contracts for cubeview.

Concrete loaders (bulk COPY, batched INSERT) implement the LoadStrategy
protocol and return a LoadResult TypedDict so the orchestrator and reporter
can treat them uniformly.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, TypedDict, runtime_checkable


class LoadResult(TypedDict, total=False):
    """
    Metrics contract returned by loaders.

    Fields are optional; the orchestrator fills gaps from profiler stats.
    """

    rows: int
    duration_seconds: float
    throughput_rows_per_sec: float
    peak_rss_bytes: Optional[int]
    cpu_percent: Optional[float]
    error: Optional[str]
    notes: Optional[str]
    extra: Dict[str, Any]


@runtime_checkable
class LoadStrategy(Protocol):
    """
    Common interface all CSV loaders implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the approach.
    """

    name: str
    description: str

    def load(self, csv_path: Path) -> LoadResult:
        """
        Load every row of `csv_path` into the records table.

        Returns
        -------
        LoadResult
            Rows written, duration and throughput.
        """
        ...


class AbstractLoadStrategy(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses set `name` and `description` and implement `load`.
    """

    name: str
    description: str

    @abc.abstractmethod
    def load(self, csv_path: Path) -> LoadResult:  # pragma: no cover - interface only
        """Load the file and return metrics."""
        raise NotImplementedError


__all__ = [
    "AbstractLoadStrategy",
    "LoadResult",
    "LoadStrategy",
]
