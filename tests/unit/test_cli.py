"""Unit tests for the datasync CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from datasync.cli import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    widgets = tmp_path / "demo" / "widgets"
    widgets.mkdir(parents=True)
    (widgets / "gear.json").write_text(json.dumps({"name": "gear"}))
    (widgets / "pack.json").write_text(json.dumps([{"name": "a"}, {"name": "b"}]))
    return tmp_path


class TestInspectCommand:
    def test_reports_loaded_records(self, runner: CliRunner, data_root: Path) -> None:
        result = runner.invoke(app, ["inspect", str(data_root), "--folder", "widgets", "--list"])

        assert result.exit_code == 0
        assert "Loaded 2 widgets records (0 invalid, 0 deferred) from 2 documents" in result.output
        assert "demo:pack" in result.output

    def test_array_flag_expands_documents(self, runner: CliRunner, data_root: Path) -> None:
        result = runner.invoke(app, ["inspect", str(data_root), "-f", "widgets", "--array", "--list"])

        assert result.exit_code == 0
        assert "Loaded 3 widgets records" in result.output
        assert "demo:pack_1" in result.output

    def test_missing_directory_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["inspect", str(tmp_path / "missing"), "--folder", "widgets"])

        assert result.exit_code == 1


class TestSplitCommand:
    def test_prints_chunk_plan(self, runner: CliRunner, tmp_path: Path) -> None:
        payload = tmp_path / "snapshot.json"
        payload.write_bytes(b"x" * 35)

        result = runner.invoke(app, ["split", str(payload), "--max-chunk-size", "10"])

        assert result.exit_code == 0
        assert "35 bytes -> 4 chunk(s) of at most 10 bytes" in result.output
        assert "[3/4] 5 bytes" in result.output

    def test_empty_file_is_one_chunk(self, runner: CliRunner, tmp_path: Path) -> None:
        payload = tmp_path / "empty.json"
        payload.write_bytes(b"")

        result = runner.invoke(app, ["split", str(payload)])

        assert result.exit_code == 0
        assert "0 bytes -> 1 chunk(s)" in result.output

    def test_non_positive_size_is_rejected(self, runner: CliRunner, tmp_path: Path) -> None:
        payload = tmp_path / "snapshot.json"
        payload.write_bytes(b"abc")

        result = runner.invoke(app, ["split", str(payload), "-s", "0"])

        assert result.exit_code == 2

    def test_missing_file_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["split", str(tmp_path / "missing.json")])

        assert result.exit_code == 1


class TestVersionCommand:
    def test_prints_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert result.output.startswith("datasync ")
