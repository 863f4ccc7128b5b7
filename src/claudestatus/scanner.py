"""Scanner for Claude Code's per-project JSONL session logs.

Layout on disk::

    ~/.claude/projects/<project-dir>/<session-id>.jsonl

Each line is one JSON record. Only ``type: "assistant"`` records carry a
``message.usage`` block; those are turned into ``CostEvent`` objects and
everything else is skipped. All scanning here is synchronous and lazy, the
async callers push it onto worker threads.
"""

import json
import logging
import time
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from .config import calculate_cost
from .errors import DirectoryAccessError, LogParseError
from .models import CostEvent, TokenUsage

logger = logging.getLogger("claudestatus")

LOG_SUFFIX = ".jsonl"
ASSISTANT_TYPE = "assistant"


def _safe_json(text: str) -> dict | None:
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return obj if isinstance(obj, dict) else None


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 log timestamp into an aware UTC datetime.

    Naive timestamps are read as local time.
    """
    if not isinstance(value, str) or not value:
        raise LogParseError("timestamp is not a string")
    try:
        ts = datetime.fromisoformat(value)
    except ValueError as e:
        raise LogParseError(f"unparseable timestamp {value!r}") from e
    return ts.astimezone(UTC)


def parse_line(line: str, source_file: Path) -> CostEvent:
    """Turn one log line into a ``CostEvent`` or raise ``LogParseError``."""
    entry = _safe_json(line)
    if entry is None:
        raise LogParseError("invalid JSON")
    if entry.get("type") != ASSISTANT_TYPE:
        raise LogParseError("not an assistant record")
    timestamp = parse_timestamp(entry.get("timestamp"))

    message = entry.get("message")
    raw_usage = message.get("usage") if isinstance(message, dict) else None
    if not isinstance(raw_usage, dict):
        raise LogParseError("no message.usage block")
    try:
        usage = TokenUsage.model_validate(raw_usage)
    except ValidationError as e:
        raise LogParseError(f"bad usage counters: {e.error_count()} errors") from e

    return CostEvent(
        timestamp=timestamp,
        cost=calculate_cost(usage),
        usage=usage,
        source_dir=source_file.parent,
        source_file=source_file,
    )


def list_project_dirs(root: Path) -> list[Path]:
    """Project directories directly under ``root``, sorted by name."""
    try:
        return sorted(p for p in root.iterdir() if p.is_dir())
    except OSError as e:
        raise DirectoryAccessError(f"cannot list {root}: {e}") from e


def list_log_files(project_dir: Path) -> list[Path]:
    """Session log files in one project directory, sorted by name."""
    try:
        return sorted(p for p in project_dir.iterdir() if p.name.endswith(LOG_SUFFIX) and p.is_file())
    except OSError as e:
        raise DirectoryAccessError(f"cannot list {project_dir}: {e}") from e


def _modified_since(path: Path, cutoff: datetime) -> bool:
    try:
        return path.stat().st_mtime >= cutoff.timestamp()
    except OSError:
        return False


def iter_log_files(root: Path, cutoff: datetime | None = None, skip_untouched: bool = False) -> Iterator[Path]:
    """Yield every session log under ``root``.

    With ``skip_untouched`` and a ``cutoff``, project directories and files
    whose mtime is older than the cutoff are not opened at all. This bounds
    I/O for long lookbacks; it is a heuristic, not a filter on events.
    """
    try:
        project_dirs = list_project_dirs(root)
    except DirectoryAccessError as e:
        logger.debug("No project logs: %s", e)
        return

    for project_dir in project_dirs:
        if skip_untouched and cutoff is not None and not _modified_since(project_dir, cutoff):
            continue
        try:
            files = list_log_files(project_dir)
        except DirectoryAccessError as e:
            logger.debug("Skipping project dir: %s", e)
            continue
        for path in files:
            if skip_untouched and cutoff is not None and not _modified_since(path, cutoff):
                continue
            yield path


def iter_file_events(path: Path, cutoff: datetime | None = None) -> Iterator[CostEvent]:
    """Yield usage events from one log file, skipping lines that do not parse.

    If the file cannot be opened, nothing is yielded. If reading fails part
    way through, the events already yielded stand and the file is abandoned.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    event = parse_line(line, path)
                except LogParseError:
                    continue
                if cutoff is not None and event.timestamp < cutoff:
                    continue
                yield event
    except OSError as e:
        logger.debug("Skipping unreadable log %s: %s", path, e)


def iter_events(root: Path, cutoff: datetime | None = None, skip_untouched: bool = False) -> Iterator[CostEvent]:
    """Yield usage events from every project log under ``root``.

    Calling it again restarts the scan from scratch.
    """
    for path in iter_log_files(root, cutoff, skip_untouched):
        yield from iter_file_events(path, cutoff)


def iter_project_events(project_dir: Path, cutoff: datetime | None = None) -> Iterator[CostEvent]:
    """Yield usage events from a single project directory."""
    try:
        files = list_log_files(project_dir)
    except DirectoryAccessError as e:
        logger.debug("No project logs: %s", e)
        return
    for path in files:
        yield from iter_file_events(path, cutoff)


def read_recent_events(root: Path, window: timedelta, now: datetime | None = None) -> list[CostEvent]:
    """Events with a non-zero cost inside the trailing ``window``, oldest first."""
    now = now or datetime.now(UTC)
    events = [e for e in iter_events(root, cutoff=now - window) if e.cost > 0]
    events.sort(key=lambda e: e.timestamp)
    return events


def was_updated_recently(root: Path, seconds: float, now: float | None = None) -> bool:
    """True if any session log under ``root`` was modified in the last ``seconds``."""
    threshold = (now if now is not None else time.time()) - seconds
    for path in iter_log_files(root):
        try:
            if path.stat().st_mtime >= threshold:
                return True
        except OSError:
            continue
    return False


def read_head_records(path: Path, limit: int = 30) -> list[dict]:
    """The first ``limit`` non-empty lines of a log that parse as JSON objects."""
    records = []
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            seen = 0
            for line in f:
                line = line.strip()
                if not line:
                    continue
                seen += 1
                if seen > limit:
                    break
                obj = _safe_json(line)
                if obj is not None:
                    records.append(obj)
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
    return records
