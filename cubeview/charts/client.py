"""
HTTP client for the query API, plus a thin wrapper over load responses.

    client = CubeClient("http://127.0.0.1:4000")
    result = client.load({"measures": ["Records.count"],
                          "timeDimensions": [{"dimension": "Records.timestamp",
                                              "granularity": "day"}]})
    for name, (x, y) in result.series().items():
        ...
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import requests

from cubeview.config import get_settings
from cubeview.errors import ClientError
from cubeview.utils.logging import get_logger

log = get_logger(__name__)

Series = Dict[str, Tuple[List[Any], List[Any]]]


class ResultSet:
    """
    A load response: rows plus column annotation.
    """

    def __init__(self, response: Dict[str, Any]) -> None:
        self.query: Dict[str, Any] = response.get("query", {})
        self.data: List[Dict[str, Any]] = list(response.get("data", []))
        annotation = response.get("annotation", {})
        self.measures: Dict[str, Dict[str, Any]] = dict(annotation.get("measures", {}))
        self.dimensions: Dict[str, Dict[str, Any]] = dict(annotation.get("dimensions", {}))
        self.time_dimensions: Dict[str, Dict[str, Any]] = dict(
            annotation.get("timeDimensions", {})
        )

    def __len__(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return not self.data

    def columns(self) -> List[str]:
        """Column aliases in display order: time, dimensions, measures."""
        return [*self.time_dimensions, *self.dimensions, *self.measures]

    def title(self, alias: str) -> str:
        for group in (self.time_dimensions, self.dimensions, self.measures):
            if alias in group:
                return group[alias].get("shortTitle") or group[alias].get("title") or alias
        return alias

    def x_axis(self) -> Optional[str]:
        """First time dimension, else first dimension, else None."""
        if self.time_dimensions:
            return next(iter(self.time_dimensions))
        if self.dimensions:
            return next(iter(self.dimensions))
        return None

    def series(self) -> Series:
        """
        Pivot rows into named (x, y) series.

        One series per measure; remaining dimensions (those not on the x
        axis) split each measure into one series per value combination.
        """
        x_alias = self.x_axis()
        split_by = [alias for alias in [*self.time_dimensions, *self.dimensions] if alias != x_alias]
        many_measures = len(self.measures) > 1
        result: Series = {}

        for row in self.data:
            x_value = row.get(x_alias) if x_alias else "Total"
            group = ", ".join(str(row.get(alias)) for alias in split_by)
            for measure in self.measures:
                if group and many_measures:
                    name = f"{group}, {self.title(measure)}"
                elif group:
                    name = group
                else:
                    name = self.title(measure)
                xs, ys = result.setdefault(name, ([], []))
                xs.append(x_value)
                ys.append(row.get(measure))
        return result


class CubeClient:
    """
    Minimal client for `/api/v1/load` and `/api/v1/meta`.

    Parameters
    ----------
    base_url : str, optional
        API root; defaults to `CUBE_API_URL`.
    timeout : float
        Per-request timeout in seconds.
    session : requests.Session, optional
        Injected session (tests, connection reuse).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or get_settings().cube_api_url).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ClientError(f"{method} {url} failed: {exc}") from exc

        if not response.ok:
            try:
                message = response.json().get("error") or response.text
            except ValueError:
                message = response.text
            log.warning(
                "Query API returned an error",
                extra={"url": url, "status_code": response.status_code},
            )
            raise ClientError(message or f"HTTP {response.status_code}", response.status_code)
        return response.json()

    def meta(self) -> Dict[str, Any]:
        return self._request("GET", "/api/v1/meta")

    def load(self, query: Dict[str, Any] | str) -> ResultSet:
        """
        POST `query` to the load endpoint and wrap the response.
        """
        payload = json.loads(query) if isinstance(query, str) else query
        return ResultSet(self._request("POST", "/api/v1/load", json={"query": payload}))


__all__ = ["CubeClient", "ResultSet"]
