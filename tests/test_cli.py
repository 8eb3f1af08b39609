"""CLI tests against a temp SQLite database."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from wear_tracker.cli import cli


@pytest.fixture
def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path / "devices.db"


def invoke(db: Path, *args: str):
    return CliRunner().invoke(cli, ["--db", str(db), *args], obj={})


def test_add_and_list(db: Path) -> None:
    result = invoke(db, "add", "Retainer")
    assert result.exit_code == 0, result.output
    assert "Added Retainer" in result.output

    result = invoke(db, "list")
    assert result.exit_code == 0, result.output
    assert "Retainer" in result.output
    assert "00:00:00" in result.output


def test_list_empty(db: Path) -> None:
    result = invoke(db, "list")
    assert result.exit_code == 0
    assert "No devices yet" in result.output


def test_add_blank_name_fails(db: Path) -> None:
    result = invoke(db, "add", "   ")
    assert result.exit_code == 1
    assert "cannot be empty" in result.output


def test_toggle_start_and_stop(db: Path) -> None:
    invoke(db, "add", "Retainer")
    started = invoke(db, "toggle", "retainer")
    assert started.exit_code == 0, started.output
    assert "Started Retainer" in started.output

    stopped = invoke(db, "toggle", "Retainer")
    assert stopped.exit_code == 0, stopped.output
    assert "Stopped Retainer" in stopped.output


def test_toggle_unknown_device(db: Path) -> None:
    result = invoke(db, "toggle", "Aligner")
    assert result.exit_code == 1
    assert "Aligner" in result.output


def test_rename(db: Path) -> None:
    invoke(db, "add", "Retainer")
    result = invoke(db, "rename", "Retainer", "Night retainer")
    assert result.exit_code == 0, result.output
    assert "Renamed Retainer to Night retainer" in result.output
    assert "Night retainer" in invoke(db, "list").output


def test_delete_skips_unknown(db: Path) -> None:
    invoke(db, "add", "Retainer")
    result = invoke(db, "delete", "Retainer", "Ghost")
    assert result.exit_code == 0, result.output
    assert "No device matching 'Ghost'" in result.output
    assert "Deleted 1 device(s)" in result.output
    assert "No devices yet" in invoke(db, "list").output


def test_list_json(db: Path) -> None:
    invoke(db, "add", "Retainer")
    result = invoke(db, "list", "--json")
    assert result.exit_code == 0, result.output
    assert '"name": "Retainer"' in result.output
    assert '"weekly_stats": {}' in result.output


def test_stats_without_history(db: Path) -> None:
    invoke(db, "add", "Retainer")
    result = invoke(db, "stats", "Retainer")
    assert result.exit_code == 0, result.output
    assert "Last 7 days" in result.output
    assert "Last 30 days" in result.output
    assert "no history yet" in result.output
