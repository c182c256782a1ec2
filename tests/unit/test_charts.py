from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go
import pytest
import requests

from cubeview.charts import CubeClient, ResultSet, build_figure, save_html
from cubeview.errors import ClientError

DAILY = {
    "query": {},
    "data": [
        {"Records.timestamp.day": "2024-01-01T00:00:00", "Records.name": "cpu", "Records.count": 2, "Records.totalValue": 3.5},
        {"Records.timestamp.day": "2024-01-01T00:00:00", "Records.name": "mem", "Records.count": 1, "Records.totalValue": 10.0},
        {"Records.timestamp.day": "2024-01-02T00:00:00", "Records.name": "cpu", "Records.count": 1, "Records.totalValue": 3.0},
    ],
    "annotation": {
        "timeDimensions": {"Records.timestamp.day": {"title": "Records Timestamp (day)", "shortTitle": "Timestamp", "type": "time"}},
        "dimensions": {"Records.name": {"title": "Records Name", "shortTitle": "Name", "type": "string"}},
        "measures": {
            "Records.count": {"title": "Records Count", "shortTitle": "Count", "type": "number"},
            "Records.totalValue": {"title": "Records Total Value", "shortTitle": "Total Value", "type": "number"},
        },
    },
}

BY_NAME = {
    "data": [
        {"Records.name": "cpu", "Records.totalValue": 6.5},
        {"Records.name": "mem", "Records.totalValue": 30.0},
    ],
    "annotation": {
        "dimensions": {"Records.name": {"shortTitle": "Name"}},
        "measures": {"Records.totalValue": {"shortTitle": "Total Value"}},
    },
}

TOTAL = {
    "data": [{"Records.count": 5}],
    "annotation": {"measures": {"Records.count": {"shortTitle": "Count"}}},
}


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _FakeSession:
    def __init__(self, response: Optional[_FakeResponse] = None, exc: Optional[Exception] = None) -> None:
        self.response = response
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response


def test_series_split_by_dimension_and_measure():
    series = ResultSet(DAILY).series()
    assert list(series) == ["cpu, Count", "cpu, Total Value", "mem, Count", "mem, Total Value"]
    xs, ys = series["cpu, Total Value"]
    assert xs == ["2024-01-01T00:00:00", "2024-01-02T00:00:00"]
    assert ys == [3.5, 3.0]


def test_series_with_single_dimension_uses_measure_title():
    series = ResultSet(BY_NAME).series()
    assert series == {"Total Value": (["cpu", "mem"], [6.5, 30.0])}


def test_series_without_dimensions():
    assert ResultSet(TOTAL).series() == {"Count": (["Total"], [5])}


def test_client_load_posts_query():
    session = _FakeSession(_FakeResponse(200, BY_NAME))
    client = CubeClient("http://api.local/", session=session)

    result = client.load({"measures": ["Records.totalValue"], "dimensions": ["Records.name"]})

    assert len(result) == 2
    (call,) = session.calls
    assert call["method"] == "POST"
    assert call["url"] == "http://api.local/api/v1/load"
    assert call["json"] == {"query": {"measures": ["Records.totalValue"], "dimensions": ["Records.name"]}}


def test_client_accepts_json_text():
    session = _FakeSession(_FakeResponse(200, TOTAL))
    CubeClient("http://api.local", session=session).load('{"measures": ["Records.count"]}')
    assert session.calls[0]["json"] == {"query": {"measures": ["Records.count"]}}


def test_client_surfaces_server_error_message():
    session = _FakeSession(_FakeResponse(400, {"error": "'nope' not found in cube 'Records'"}))
    client = CubeClient("http://api.local", session=session)
    with pytest.raises(ClientError, match="not found") as info:
        client.load({"measures": ["Records.nope"]})
    assert info.value.status_code == 400


def test_client_handles_non_json_errors():
    session = _FakeSession(_FakeResponse(502, None, text="Bad Gateway"))
    with pytest.raises(ClientError, match="Bad Gateway"):
        CubeClient("http://api.local", session=session).meta()


def test_client_wraps_connection_errors():
    session = _FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(ClientError, match="failed"):
        CubeClient("http://api.local", session=session).meta()


@pytest.mark.parametrize(
    "chart_type, trace_type, traces",
    [("line", "scatter", 4), ("area", "scatter", 4), ("bar", "bar", 4)],
)
def test_cartesian_charts(chart_type: str, trace_type: str, traces: int):
    fig = build_figure(ResultSet(DAILY), chart_type, title="Daily")
    assert len(fig.data) == traces
    assert all(trace.type == trace_type for trace in fig.data)
    assert fig.layout.title.text == "Daily"
    assert fig.layout.xaxis.title.text == "Timestamp"


def test_pie_chart():
    fig = build_figure(ResultSet(BY_NAME), "pie")
    (trace,) = fig.data
    assert trace.type == "pie"
    assert list(trace.labels) == ["cpu", "mem"]
    assert list(trace.values) == [6.5, 30.0]


def test_pie_chart_without_measure():
    result = ResultSet(
        {
            "data": [{"Records.name": "cpu"}],
            "annotation": {"dimensions": {"Records.name": {"title": "Name", "type": "string"}}},
        }
    )
    with pytest.raises(ValueError, match="pie charts need a measure"):
        build_figure(result, "pie")


def test_number_chart():
    fig = build_figure(ResultSet(TOTAL), "number")
    (trace,) = fig.data
    assert trace.type == "indicator"
    assert trace.value == 5


def test_table_chart():
    fig = build_figure(ResultSet(BY_NAME), "table")
    (trace,) = fig.data
    assert list(trace.header.values) == ["Name", "Total Value"]


def test_empty_result_renders_placeholder(caplog: pytest.LogCaptureFixture):
    with caplog.at_level("WARNING", logger="cubeview.charts.render"):
        fig = build_figure(ResultSet({"data": [], "annotation": {}}), "line")
    assert any(r.name == "cubeview.charts.render" for r in caplog.records)
    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No data"


def test_unknown_chart_type():
    with pytest.raises(ValueError, match="Unknown chart type"):
        build_figure(ResultSet(TOTAL), "radar")


def test_save_html(tmp_path: Path):
    fig = go.Figure(go.Bar(x=["a"], y=[1]))
    out = save_html(fig, tmp_path / "charts" / "out.html")
    assert out.exists()
    assert "plotly" in out.read_text(encoding="utf-8").lower()
