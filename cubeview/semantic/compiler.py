"""
Query compiler: turns a Query into one parameterised SELECT.

Aggregation and grouping are left to the database. The compiler only maps
members to their SQL expressions, adds WHERE/HAVING clauses with `%s`
placeholders and applies ordering and limits. Filter values and date bounds
are always passed as parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from cubeview.config import get_settings
from cubeview.errors import QueryError
from cubeview.semantic.model import Cube, DataModel, Dimension, Measure
from cubeview.semantic.query import Filter, Query, parse_query

ColumnKind = Literal["measure", "dimension", "time"]

_AGGREGATES = {
    "sum": "SUM({expr})",
    "avg": "AVG({expr})",
    "min": "MIN({expr})",
    "max": "MAX({expr})",
    "count_distinct": "COUNT(DISTINCT {expr})",
}


@dataclass(frozen=True)
class Column:
    """One output column of a compiled query."""

    alias: str
    member: str
    kind: ColumnKind
    type: str
    title: str
    short_title: str
    granularity: Optional[str] = None


@dataclass
class CompiledQuery:
    sql: str
    params: List[Any] = field(default_factory=list)
    columns: List[Column] = field(default_factory=list)

    def cache_key(self) -> Tuple[str, Tuple[str, ...]]:
        return self.sql, tuple(repr(p) for p in self.params)

    def annotation(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Column metadata grouped the way the chart client expects."""
        groups: Dict[str, Dict[str, Dict[str, Any]]] = {
            "measures": {},
            "dimensions": {},
            "timeDimensions": {},
        }
        key = {"measure": "measures", "dimension": "dimensions", "time": "timeDimensions"}
        for col in self.columns:
            entry: Dict[str, Any] = {
                "title": col.title,
                "shortTitle": col.short_title,
                "type": col.type,
            }
            if col.granularity:
                entry["granularity"] = col.granularity
            groups[key[col.kind]][col.alias] = entry
        return groups


def _quote_alias(alias: str) -> str:
    return '"' + alias.replace('"', '""') + '"'


def _measure_sql(measure: Measure) -> str:
    if measure.type == "count":
        return f"COUNT({measure.sql})" if measure.sql else "COUNT(*)"
    return _AGGREGATES[measure.type].format(expr=measure.sql)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filter_clause(expr: str, flt: Filter, params: List[Any]) -> str:
    op = flt.operator
    if op == "set":
        return f"({expr} IS NOT NULL)"
    if op == "notSet":
        return f"({expr} IS NULL)"
    if op in ("equals", "notEquals"):
        placeholders = ", ".join(["%s"] * len(flt.values))
        params.extend(flt.values)
        if op == "equals":
            return f"({expr} IN ({placeholders}))"
        return f"({expr} NOT IN ({placeholders}) OR {expr} IS NULL)"
    if op in ("contains", "notContains"):
        parts = []
        for value in flt.values:
            parts.append(f"{expr}::text ILIKE %s")
            params.append(f"%{_escape_like(str(value))}%")
        joined = " OR ".join(parts)
        return f"({joined})" if op == "contains" else f"(NOT ({joined}) OR {expr} IS NULL)"
    comparator = {"gt": ">", "gte": ">=", "lt": "<", "lte": "<="}[op]
    params.append(flt.values[0])
    return f"({expr} {comparator} %s)"


class _Builder:
    """Accumulates the pieces of a single-cube SELECT."""

    def __init__(self, model: DataModel, timezone: str) -> None:
        self.model = model
        self.timezone = timezone
        self.cube: Optional[Cube] = None
        self.select: List[str] = []
        self.select_params: List[Any] = []
        self.columns: List[Column] = []
        self.where: List[str] = []
        self.where_params: List[Any] = []
        self.having: List[str] = []
        self.having_params: List[Any] = []
        self.group_by: List[int] = []

    def _bind_cube(self, cube: Cube, member: str) -> None:
        if self.cube is None:
            self.cube = cube
        elif self.cube.name != cube.name:
            raise QueryError(
                f"'{member}' belongs to cube '{cube.name}' but the query already uses "
                f"'{self.cube.name}'; joins are not supported"
            )

    def _title(self, cube: Cube, short: str) -> str:
        return f"{cube.title or cube.name} {short}"

    def _time_expr(self, dimension: Dimension) -> str:
        # date_trunc works in the configured zone, not the session's
        self.select_params.append(self.timezone)
        return f"{dimension.expression} AT TIME ZONE %s"

    def add_dimension(self, member: str) -> None:
        cube, dimension = self.model.dimension(member)
        self._bind_cube(cube, member)
        if any(col.alias == member for col in self.columns):
            return
        self.select.append(f"{dimension.expression} AS {_quote_alias(member)}")
        self.columns.append(
            Column(
                alias=member,
                member=member,
                kind="dimension",
                type=dimension.type,
                title=self._title(cube, dimension.display_title),
                short_title=dimension.display_title,
            )
        )
        self.group_by.append(len(self.select))

    def add_time_dimension(self, member: str, granularity: Optional[str], bounds) -> None:
        cube, dimension = self.model.dimension(member)
        self._bind_cube(cube, member)
        if dimension.type != "time":
            raise QueryError(f"'{member}' is a {dimension.type} dimension, not a time dimension")
        if granularity:
            alias = f"{member}.{granularity}"
            if not any(col.alias == alias for col in self.columns):
                expr = f"date_trunc('{granularity}', {self._time_expr(dimension)})"
                self.select.append(f"{expr} AS {_quote_alias(alias)}")
                self.columns.append(
                    Column(
                        alias=alias,
                        member=member,
                        kind="time",
                        type="time",
                        title=f"{self._title(cube, dimension.display_title)} ({granularity})",
                        short_title=dimension.display_title,
                        granularity=granularity,
                    )
                )
                self.group_by.append(len(self.select))
        if bounds is not None:
            start, end = bounds
            self.where.append(f"({dimension.expression} >= %s AND {dimension.expression} <= %s)")
            self.where_params.extend([start, end])

    def add_measure(self, member: str) -> None:
        cube, measure = self.model.measure(member)
        self._bind_cube(cube, member)
        if any(col.alias == member for col in self.columns):
            return
        self.select.append(f"{_measure_sql(measure)} AS {_quote_alias(member)}")
        self.columns.append(
            Column(
                alias=member,
                member=member,
                kind="measure",
                type="number",
                title=self._title(cube, measure.display_title),
                short_title=measure.display_title,
            )
        )

    def add_filter(self, flt: Filter) -> None:
        cube, found = self.model.resolve(flt.member)
        self._bind_cube(cube, flt.member)
        if isinstance(found, Measure):
            self.having.append(_filter_clause(_measure_sql(found), flt, self.having_params))
        else:
            self.where.append(_filter_clause(found.expression, flt, self.where_params))

    def position_of(self, member: str) -> int:
        """1-based select position for an ORDER BY member."""
        for idx, col in enumerate(self.columns, start=1):
            if col.alias == member:
                return idx
        # order by a time dimension refers to its truncated column
        for idx, col in enumerate(self.columns, start=1):
            if col.kind == "time" and col.member == member:
                return idx
        raise QueryError(f"cannot order by '{member}': it is not part of the query")


def compile_query(
    model: DataModel,
    query: Query | Dict[str, Any],
    default_limit: Optional[int] = None,
    max_limit: Optional[int] = None,
    timezone: str = "UTC",
) -> CompiledQuery:
    """
    Compile `query` against `model`.

    Parameters
    ----------
    model : DataModel
        Cubes the query members are resolved against.
    query : Query | dict
        Parsed query, or its JSON dict form.
    default_limit, max_limit : int, optional
        Row limits; default to settings. The effective limit never exceeds
        `max_limit`.
    timezone : str
        Zone in which time dimensions are truncated.

    Raises
    ------
    QueryError
        For unknown members, mixed cubes or invalid ordering.
    """
    settings = get_settings()
    default_limit = default_limit or settings.query_default_limit
    max_limit = max_limit or settings.query_max_limit
    q = parse_query(query)

    builder = _Builder(model, timezone)
    for member in q.dimensions:
        builder.add_dimension(member)
    for td in q.time_dimensions:
        builder.add_time_dimension(td.dimension, td.granularity, td.bounds())
    for member in q.measures:
        builder.add_measure(member)
    for flt in q.filters:
        builder.add_filter(flt)

    if not builder.select or builder.cube is None:
        raise QueryError("query selects no columns")

    order: List[str] = []
    if q.order:
        for member, direction in q.order:
            order.append(f"{builder.position_of(member)} {direction.upper()}")
    else:
        time_cols = [i for i, c in enumerate(builder.columns, start=1) if c.kind == "time"]
        measure_cols = [i for i, c in enumerate(builder.columns, start=1) if c.kind == "measure"]
        if time_cols:
            order.append(f"{time_cols[0]} ASC")
        elif measure_cols:
            order.append(f"{measure_cols[0]} DESC")
        else:
            order.append("1 ASC")

    limit = min(q.limit or default_limit, max_limit)

    lines = ["SELECT", "  " + ",\n  ".join(builder.select), f"FROM {builder.cube.sql_table}"]
    if builder.where:
        lines.append("WHERE " + "\n  AND ".join(builder.where))
    has_measures = any(c.kind == "measure" for c in builder.columns)
    if builder.group_by and (has_measures or builder.having):
        lines.append("GROUP BY " + ", ".join(str(i) for i in builder.group_by))
    elif builder.group_by:
        # dimensions only, no aggregate anywhere: distinct combinations
        lines[0] = "SELECT DISTINCT"
    if builder.having:
        lines.append("HAVING " + "\n  AND ".join(builder.having))
    lines.append("ORDER BY " + ", ".join(order))
    lines.append("LIMIT %s")
    params: List[Any] = [*builder.select_params, *builder.where_params, *builder.having_params, limit]
    if q.offset:
        lines.append("OFFSET %s")
        params.append(q.offset)

    return CompiledQuery(sql="\n".join(lines), params=params, columns=builder.columns)


__all__ = ["Column", "CompiledQuery", "compile_query"]
