from __future__ import annotations

from rich.console import Console

from cubeview.reporter import print_load_summary, print_result


def _console() -> Console:
    return Console(record=True, width=120)


def test_print_result_uses_annotation_titles():
    console = _console()
    print_result(
        {
            "data": [{"Records.name": "cpu", "Records.totalValue": 1234.5}],
            "annotation": {
                "dimensions": {"Records.name": {"title": "Records Name"}},
                "measures": {"Records.totalValue": {"title": "Records Total Value"}},
            },
        },
        console=console,
    )
    text = console.export_text()
    assert "Records Name" in text
    assert "Records Total Value" in text
    assert "1,234.50" in text
    assert "1 row(s)" in text


def test_print_result_empty():
    console = _console()
    print_result({"data": []}, console=console)
    assert "no rows" in console.export_text()


def test_print_load_summary_shows_error():
    console = _console()
    print_load_summary(
        {"loader": "copy", "rows": 0, "duration_seconds": 0.1, "error": "bad header"},
        console=console,
    )
    text = console.export_text()
    assert "copy" in text
    assert "Load failed: bad header" in text
