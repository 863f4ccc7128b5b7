"""Fold scanned usage events into time-window totals.

Windows are relative to ``now`` except the daily one, which starts at local
midnight. One event can count toward several overlapping windows.
"""

import asyncio
import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from .config import PROJECTS_DIR
from .errors import DirectoryAccessError
from .models import EPOCH, AggregatedUsage, CostEvent, ProjectCostSnapshot
from .scanner import iter_events, iter_project_events, list_log_files, list_project_dirs, read_head_records

logger = logging.getLogger("claudestatus")

WINDOW_5H = timedelta(hours=5)
WINDOW_7D = timedelta(days=7)
WINDOW_30D = timedelta(days=30)

# How many lines of a session log to inspect when matching a workspace by cwd
CWD_PROBE_LINES = 30

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def start_of_local_day(now: datetime) -> datetime:
    """Midnight of ``now``'s calendar day in the local timezone."""
    return now.astimezone().replace(hour=0, minute=0, second=0, microsecond=0)


def aggregate_usage(events: Iterable[CostEvent], now: datetime | None = None) -> AggregatedUsage:
    """Sum cost into the 5h, today and 7d windows, and tokens into the 5h window."""
    now = now or datetime.now(UTC)
    day_start = start_of_local_day(now)
    result = AggregatedUsage()

    for event in events:
        age = now - event.timestamp
        if age <= WINDOW_7D:
            result.cost_7d += event.cost
        if event.timestamp >= day_start:
            result.cost_day += event.cost
        if age <= WINDOW_5H:
            result.cost_5h += event.cost
            result.tokens_in_5h += event.usage.input_tokens
            result.tokens_out_5h += event.usage.output_tokens
            result.tokens_cache_read_5h += event.usage.cache_read_input_tokens
            result.tokens_cache_create_5h += event.usage.cache_creation_input_tokens

    return result


def read_all_usage(root: Path = PROJECTS_DIR, now: datetime | None = None) -> AggregatedUsage:
    """Aggregate every session log under ``root``."""
    now = now or datetime.now(UTC)
    # Nothing older than the widest window can contribute
    return aggregate_usage(iter_events(root, cutoff=now - WINDOW_7D), now)


def project_cost(project_dir: Path, project_name: str, now: datetime | None = None) -> ProjectCostSnapshot:
    """Costs for one project directory over today, 7 days and 30 days."""
    now = now or datetime.now(UTC)
    day_start = start_of_local_day(now)

    try:
        session_count = len(list_log_files(project_dir))
    except DirectoryAccessError as e:
        logger.debug("No sessions for %s: %s", project_name, e)
        session_count = 0

    cost_today = cost_7d = cost_30d = 0.0
    last_active = None
    for event in iter_project_events(project_dir):
        age = now - event.timestamp
        if age < WINDOW_30D:
            cost_30d += event.cost
        if age < WINDOW_7D:
            cost_7d += event.cost
        if event.timestamp >= day_start:
            cost_today += event.cost
        if last_active is None or event.timestamp > last_active:
            last_active = event.timestamp

    return ProjectCostSnapshot(
        project_name=project_name,
        project_path=project_dir,
        cost_today=cost_today,
        cost_7d=cost_7d,
        cost_30d=cost_30d,
        session_count=session_count,
        last_active=last_active or EPOCH,
    )


def workspace_path_to_hash(workspace_path: str) -> str:
    """Claude Code's directory name for a workspace: every non-alphanumeric char becomes '-'."""
    return _NON_ALNUM.sub("-", workspace_path)


def _dir_matches_workspace(project_dir: Path, workspace_path: str) -> bool:
    try:
        files = list_log_files(project_dir)
    except DirectoryAccessError:
        return False
    if not files:
        return False
    return any(r.get("cwd") == workspace_path for r in read_head_records(files[0], CWD_PROBE_LINES))


def resolve_project_dir(workspace_path: str, root: Path = PROJECTS_DIR) -> Path | None:
    """Find the log directory for a workspace, or None when it has no logs."""
    candidate = root / workspace_path_to_hash(workspace_path)
    if workspace_path and candidate.is_dir():
        return candidate

    try:
        project_dirs = list_project_dirs(root)
    except DirectoryAccessError as e:
        logger.debug("Cannot resolve %s: %s", workspace_path, e)
        return None
    for project_dir in project_dirs:
        if _dir_matches_workspace(project_dir, workspace_path):
            return project_dir
    return None


def workspace_cost(workspace_path: str, root: Path = PROJECTS_DIR, now: datetime | None = None) -> ProjectCostSnapshot | None:
    project_dir = resolve_project_dir(workspace_path, root)
    if project_dir is None:
        return None
    return project_cost(project_dir, Path(workspace_path).name, now)


async def get_all_project_costs(
    workspaces: Iterable[str], root: Path = PROJECTS_DIR, now: datetime | None = None
) -> list[ProjectCostSnapshot]:
    """Per-workspace costs, computed concurrently, most expensive today first."""
    results = await asyncio.gather(
        *(asyncio.to_thread(workspace_cost, str(w), root, now) for w in workspaces)
    )
    costs = [r for r in results if r is not None]
    costs.sort(key=lambda p: p.cost_today, reverse=True)
    return costs
