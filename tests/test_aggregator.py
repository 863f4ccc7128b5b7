"""Tests for window aggregation and project cost resolution."""

from datetime import UTC, datetime, timedelta

import pytest

from claudestatus.aggregator import (
    aggregate_usage,
    get_all_project_costs,
    project_cost,
    read_all_usage,
    resolve_project_dir,
    start_of_local_day,
    workspace_path_to_hash,
)
from claudestatus.models import EPOCH

from conftest import assistant_record, make_event


@pytest.fixture
def local_noon():
    # Noon keeps "2h ago" and "3h ago" on today's local date and "25h ago" on yesterday's
    return datetime.now().astimezone().replace(hour=12, minute=0, second=0, microsecond=0)


def test_windows_overlap(local_noon):
    events = [
        make_event(local_noon - timedelta(hours=2), 0.10, input_tokens=100, output_tokens=10),
        make_event(local_noon - timedelta(hours=3), 0.20, input_tokens=200, output_tokens=20),
        make_event(local_noon - timedelta(hours=25), 0.05, input_tokens=999),
    ]
    result = aggregate_usage(events, local_noon)
    assert result.cost_5h == pytest.approx(0.30)
    assert result.cost_day == pytest.approx(0.30)
    assert result.cost_7d == pytest.approx(0.35)
    assert result.tokens_in_5h == 300
    assert result.tokens_out_5h == 30


def test_window_edges(local_noon):
    events = [
        make_event(local_noon - timedelta(hours=5), 1.0),
        make_event(local_noon - timedelta(days=7), 2.0),
        make_event(local_noon - timedelta(days=7, seconds=1), 4.0),
    ]
    result = aggregate_usage(events, local_noon)
    assert result.cost_5h == pytest.approx(1.0)
    assert result.cost_7d == pytest.approx(3.0)


def test_cost_day_starts_at_local_midnight():
    now = datetime.now().astimezone().replace(hour=0, minute=30, second=0, microsecond=0)
    events = [
        make_event(now - timedelta(minutes=20), 1.0),  # 00:10 today
        make_event(now - timedelta(minutes=40), 2.0),  # 23:50 yesterday
    ]
    result = aggregate_usage(events, now)
    assert result.cost_day == pytest.approx(1.0)
    assert result.cost_5h == pytest.approx(3.0)


def test_start_of_local_day():
    now = datetime.now().astimezone().replace(hour=15, minute=42)
    start = start_of_local_day(now)
    assert (start.hour, start.minute, start.second) == (0, 0, 0)
    assert start.date() == now.date()


def test_read_all_usage_from_logs(write_log, projects_dir):
    now = datetime.now(UTC)
    write_log("a", "s1", [
        assistant_record(now - timedelta(hours=1), input_tokens=1_000_000),
        "garbage",
        assistant_record(now - timedelta(days=10), input_tokens=1_000_000),
    ])
    write_log("b", "s2", [assistant_record(now - timedelta(hours=2), cache_read=1_000_000, cache_create=1_000_000)])
    result = read_all_usage(projects_dir, now)
    assert result.cost_5h == pytest.approx(3.00 + 0.30 + 3.75)
    assert result.cost_7d == pytest.approx(3.00 + 0.30 + 3.75)
    assert result.tokens_cache_read_5h == 1_000_000
    assert result.tokens_cache_create_5h == 1_000_000


def test_read_all_usage_missing_dir(tmp_path):
    result = read_all_usage(tmp_path / "nope")
    assert result.cost_5h == 0
    assert result.cost_7d == 0


def test_workspace_path_to_hash():
    assert workspace_path_to_hash("/home/user/my-app") == "-home-user-my-app"
    assert workspace_path_to_hash("/home/long/sb_git/vscode-claude-status") == "-home-long-sb-git-vscode-claude-status"
    assert workspace_path_to_hash("/mnt/c/Users/910lo/sb_git/my.app") == "-mnt-c-Users-910lo-sb-git-my-app"
    assert workspace_path_to_hash("") == ""

    result = workspace_path_to_hash("/home/User123/project")
    assert "/" not in result
    assert "User123" in result


def test_project_cost(write_log, projects_dir, local_noon):
    write_log("-home-user-app", "s1", [
        assistant_record(local_noon - timedelta(hours=1), input_tokens=1_000_000),
        assistant_record(local_noon - timedelta(days=3), output_tokens=1_000_000),
    ])
    write_log("-home-user-app", "s2", [
        assistant_record(local_noon - timedelta(days=20), input_tokens=1_000_000),
        "not json",
    ])
    result = project_cost(projects_dir / "-home-user-app", "app", local_noon)
    assert result.project_name == "app"
    assert result.session_count == 2
    assert result.cost_today == pytest.approx(3.0)
    assert result.cost_7d == pytest.approx(18.0)
    assert result.cost_30d == pytest.approx(21.0)
    assert result.last_active == (local_noon - timedelta(hours=1)).astimezone(UTC)


def test_project_cost_without_events(projects_dir):
    (projects_dir / "empty").mkdir()
    result = project_cost(projects_dir / "empty", "empty")
    assert result.session_count == 0
    assert result.cost_30d == 0
    assert result.last_active == EPOCH


def test_resolve_project_dir_by_hash(projects_dir):
    (projects_dir / "-home-user-app").mkdir()
    assert resolve_project_dir("/home/user/app", projects_dir) == projects_dir / "-home-user-app"


def test_resolve_project_dir_by_cwd(write_log, projects_dir):
    now = datetime.now(UTC)
    write_log("other-name", "s1", [
        {"type": "summary", "summary": "x"},
        assistant_record(now, cwd="/srv/Weird Path/app"),
    ])
    write_log("unrelated", "s1", [assistant_record(now, cwd="/elsewhere")])
    assert resolve_project_dir("/srv/Weird Path/app", projects_dir) == projects_dir / "other-name"


def test_resolve_project_dir_no_match(write_log, projects_dir):
    write_log("unrelated", "s1", [assistant_record(datetime.now(UTC), cwd="/elsewhere")])
    assert resolve_project_dir("/home/user/app", projects_dir) is None
    assert resolve_project_dir("/home/user/app", projects_dir / "missing") is None


@pytest.mark.asyncio
async def test_get_all_project_costs_sorted(write_log, projects_dir):
    now = datetime.now(UTC)
    write_log("-work-cheap", "s1", [assistant_record(now, input_tokens=1000)])
    write_log("-work-pricey", "s1", [assistant_record(now, output_tokens=1_000_000)])

    costs = await get_all_project_costs(["/work/cheap", "/work/pricey", "/work/unknown"], projects_dir)
    assert [c.project_name for c in costs] == ["pricey", "cheap"]
