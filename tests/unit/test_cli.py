from __future__ import annotations

from pathlib import Path

import psycopg
import pytest
from typer.testing import CliRunner

from cubeview import main as cli

runner = CliRunner()


def test_load_reports_unreachable_database(monkeypatch: pytest.MonkeyPatch, sample_csv: Path):
    def _refuse(*args, **kwargs):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(cli, "run_load", _refuse)
    result = runner.invoke(cli.app, ["load", str(sample_csv)])
    assert result.exit_code == 1
    assert "connection refused" in result.output
    assert not isinstance(result.exception, psycopg.Error)


def test_load_reports_unknown_loader(sample_csv: Path):
    result = runner.invoke(cli.app, ["load", str(sample_csv), "--strategy", "bogus"])
    assert result.exit_code == 1
    assert "Available: copy, insert" in result.output
