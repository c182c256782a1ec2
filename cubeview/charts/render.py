"""
Plotly figures for load results.

Supported chart types: line, area, bar, pie, number, table.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import plotly.graph_objects as go

from cubeview.charts.client import ResultSet
from cubeview.utils.logging import get_logger

log = get_logger(__name__)

CHART_TYPES = ("line", "area", "bar", "pie", "number", "table")


def _empty_figure(title: Optional[str]) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text="No data",
        showarrow=False,
        xref="paper",
        yref="paper",
        x=0.5,
        y=0.5,
        font=dict(size=18),
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(title=title)
    return fig


def _cartesian(result: ResultSet, chart_type: str) -> go.Figure:
    fig = go.Figure()
    for name, (xs, ys) in result.series().items():
        if chart_type == "bar":
            fig.add_trace(go.Bar(x=xs, y=ys, name=name))
        elif chart_type == "area":
            fig.add_trace(go.Scatter(x=xs, y=ys, name=name, mode="lines", stackgroup="one"))
        else:
            fig.add_trace(go.Scatter(x=xs, y=ys, name=name, mode="lines+markers"))

    x_alias = result.x_axis()
    fig.update_layout(
        xaxis_title=result.title(x_alias) if x_alias else None,
        barmode="group",
        hovermode="x unified",
        legend=dict(orientation="h", y=-0.2),
    )
    return fig


def _pie(result: ResultSet) -> go.Figure:
    series = result.series()
    if not series:
        raise ValueError("pie charts need a measure")
    # one slice per x value of the first series
    name, (labels, values) = next(iter(series.items()))
    return go.Figure(go.Pie(labels=labels, values=values, name=name, hole=0.3))


def _number(result: ResultSet) -> go.Figure:
    measure = next(iter(result.measures), None)
    if measure is None:
        raise ValueError("number charts need a measure")
    value = result.data[0].get(measure)
    return go.Figure(
        go.Indicator(mode="number", value=value, title={"text": result.title(measure)})
    )


def _table(result: ResultSet) -> go.Figure:
    columns = result.columns()
    return go.Figure(
        go.Table(
            header=dict(values=[result.title(c) for c in columns], align="left"),
            cells=dict(values=[[row.get(c) for row in result.data] for c in columns], align="left"),
        )
    )


def build_figure(result: ResultSet, chart_type: str = "line", title: Optional[str] = None) -> go.Figure:
    """Render `result` as a plotly figure.

    Raises
    ------
    ValueError
        If `chart_type` is not one of CHART_TYPES.
    """
    if chart_type not in CHART_TYPES:
        raise ValueError(f"Unknown chart type '{chart_type}'. Available: {', '.join(CHART_TYPES)}")

    if result.is_empty:
        log.warning("Empty result, rendering placeholder for %s chart", chart_type)
        return _empty_figure(title)

    if chart_type == "pie":
        fig = _pie(result)
    elif chart_type == "number":
        fig = _number(result)
    elif chart_type == "table":
        fig = _table(result)
    else:
        fig = _cartesian(result, chart_type)

    fig.update_layout(title=title, template="plotly_white")
    return fig


def save_html(fig: go.Figure, path: Path | str) -> Path:
    """Write a standalone HTML file (plotly.js from CDN)."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(str(out), include_plotlyjs="cdn", full_html=True)
    log.info("Chart written to %s", out)
    return out
