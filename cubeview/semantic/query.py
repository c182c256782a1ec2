"""
Query objects accepted by the load API.

Queries arrive as JSON using camelCase keys (as the chart client sends them):

    {
      "measures": ["Records.count", "Records.totalValue"],
      "dimensions": ["Records.name"],
      "timeDimensions": [
        {"dimension": "Records.timestamp", "granularity": "day",
         "dateRange": ["2024-01-01", "2024-01-31"]}
      ],
      "filters": [{"member": "Records.name", "operator": "equals", "values": ["cpu"]}],
      "order": {"Records.timestamp": "asc"},
      "limit": 100
    }
"""

from __future__ import annotations

import json
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from cubeview.errors import QueryError

Granularity = Literal["second", "minute", "hour", "day", "week", "month", "quarter", "year"]
FilterOperator = Literal[
    "equals", "notEquals", "contains", "notContains", "gt", "gte", "lt", "lte", "set", "notSet"
]
Direction = Literal["asc", "desc"]
FilterValue = Union[str, int, float, bool]

_UNARY = {"set", "notSet"}
_SINGLE_VALUE = {"gt", "gte", "lt", "lte"}


def _parse_bound(value: str, end: bool) -> datetime:
    """
    Parse an ISO date or datetime. A bare date used as the upper bound covers
    the whole day.
    """
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            parsed = datetime.combine(day, time.max if end else time.min)
        else:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"invalid date {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class _QueryPart(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
        "frozen": True,
    }


class TimeDimension(_QueryPart):
    dimension: str
    granularity: Optional[Granularity] = None
    date_range: Optional[Tuple[str, str]] = None

    @field_validator("date_range")
    @classmethod
    def _valid_range(cls, value: Optional[Tuple[str, str]]) -> Optional[Tuple[str, str]]:
        if value is None:
            return value
        start, end = _parse_bound(value[0], end=False), _parse_bound(value[1], end=True)
        if start > end:
            raise ValueError("dateRange start is after its end")
        return value

    def bounds(self) -> Optional[Tuple[datetime, datetime]]:
        if self.date_range is None:
            return None
        return _parse_bound(self.date_range[0], end=False), _parse_bound(self.date_range[1], end=True)


class Filter(_QueryPart):
    member: str
    operator: FilterOperator
    values: List[FilterValue] = Field(default_factory=list)

    @model_validator(mode="after")
    def _arity(self) -> "Filter":
        if self.operator in _UNARY and self.values:
            raise ValueError(f"operator {self.operator} takes no values")
        if self.operator not in _UNARY and not self.values:
            raise ValueError(f"operator {self.operator} needs at least one value")
        if self.operator in _SINGLE_VALUE and len(self.values) != 1:
            raise ValueError(f"operator {self.operator} takes exactly one value")
        return self


class Query(_QueryPart):
    measures: List[str] = Field(default_factory=list)
    dimensions: List[str] = Field(default_factory=list)
    time_dimensions: List[TimeDimension] = Field(default_factory=list)
    filters: List[Filter] = Field(default_factory=list)
    order: List[Tuple[str, Direction]] = Field(default_factory=list)
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)

    @field_validator("order", mode="before")
    @classmethod
    def _order_pairs(cls, value: Any) -> Any:
        # {"Records.count": "desc"} keeps insertion order
        if isinstance(value, dict):
            return list(value.items())
        return value

    @model_validator(mode="after")
    def _not_empty(self) -> "Query":
        grouped = any(td.granularity for td in self.time_dimensions)
        if not (self.measures or self.dimensions or grouped):
            raise ValueError("query needs at least one measure or dimension")
        return self

    def to_json_dict(self) -> Dict[str, Any]:
        """camelCase dict, echoed back in load responses."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def parse_query(raw: Union[str, bytes, Dict[str, Any], Query]) -> Query:
    """
    Build a Query from a dict or JSON text.

    Raises
    ------
    QueryError
        If the payload is not JSON or does not describe a valid query.
    """
    if isinstance(raw, Query):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise QueryError(f"query is not valid JSON: {exc.msg}") from exc
    if not isinstance(raw, dict):
        raise QueryError("query must be a JSON object")
    try:
        return Query.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise QueryError(f"invalid query: {where + ': ' if where else ''}{first['msg']}") from exc


__all__ = [
    "Filter",
    "Granularity",
    "Query",
    "TimeDimension",
    "parse_query",
]
