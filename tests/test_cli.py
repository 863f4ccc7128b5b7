"""Tests for the command line interface."""

from datetime import UTC, datetime

import pytest
from click.testing import CliRunner

from claudestatus import __version__
from claudestatus.cli import cli

from conftest import assistant_record


@pytest.fixture
def runner(settings, monkeypatch):
    monkeypatch.setattr("claudestatus.cli.Settings", lambda: settings)
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_status_without_credentials(runner, write_log):
    write_log("-work-app", "s1", [assistant_record(datetime.now(UTC), output_tokens=100_000)])
    result = runner.invoke(cli, ["status"])
    assert result.exit_code == 0, result.output
    assert "Not logged in" in result.output
    assert "$1.50" in result.output


def test_projects(runner, write_log):
    write_log("-work-app", "s1", [assistant_record(datetime.now(UTC), input_tokens=1_000_000)])
    result = runner.invoke(cli, ["projects", "-w", "/work/app"])
    assert result.exit_code == 0, result.output
    assert "app" in result.output
    assert "$3.00" in result.output


def test_projects_none_found(runner):
    result = runner.invoke(cli, ["projects", "-w", "/nowhere"])
    assert result.exit_code == 0
    assert "No project data found" in result.output


def test_heatmap(runner):
    result = runner.invoke(cli, ["heatmap", "--days", "3"])
    assert result.exit_code == 0, result.output
    assert datetime.now().strftime("%Y-%m-%d") in result.output


def test_status_plain(runner, write_log):
    write_log("-work-app", "s1", [assistant_record(datetime.now(UTC), output_tokens=100_000)])
    result = runner.invoke(cli, ["status", "--plain", "-w", "/work/app"])
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines()[0] == "Not logged in"
    assert "claude login" in result.output


def test_projects_without_events_has_no_last_active(runner, write_log):
    write_log("-work-app", "s1", ['{"type": "user", "cwd": "/work/app"}'])
    result = runner.invoke(cli, ["projects", "-w", "/work/app"])
    assert result.exit_code == 0, result.output
    assert "1970" not in result.output
    assert "$0.00" in result.output
