"""Daily and hour-of-day usage aggregates for the activity heatmap."""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from .config import PROJECTS_DIR
from .models import CostEvent, DailyUsage, HeatmapData, HourlyUsage
from .scanner import iter_events

HOURLY_DAYS = 30


def local_date_key(ts: datetime) -> str:
    return ts.astimezone().strftime("%Y-%m-%d")


def aggregate_by_day(events: Iterable[CostEvent], days: int, now: datetime | None = None) -> list[DailyUsage]:
    """One entry per local calendar day for the last ``days`` days, oldest first, zero-filled."""
    now = now or datetime.now(UTC)
    by_date: dict[str, DailyUsage] = {}
    for e in events:
        key = local_date_key(e.timestamp)
        day = by_date.setdefault(key, DailyUsage(date=key))
        day.cost += e.cost
        day.tokens_total += e.tokens
        day.session_count += 1

    result = []
    for i in range(days - 1, -1, -1):
        key = local_date_key(now - timedelta(days=i))
        result.append(by_date.get(key) or DailyUsage(date=key))
    return result


def aggregate_by_hour(events: Iterable[CostEvent], days: int, now: datetime | None = None) -> list[HourlyUsage]:
    """Average cost per event for each local hour of day over the last ``days`` days."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=days)
    totals = [0.0] * 24
    counts = [0] * 24
    for e in events:
        if e.timestamp < cutoff:
            continue
        totals[e.hour] += e.cost
        counts[e.hour] += 1
    return [
        HourlyUsage(hour=h, avg_cost=totals[h] / counts[h] if counts[h] else 0.0, count=counts[h])
        for h in range(24)
    ]


def get_heatmap_data(root: Path = PROJECTS_DIR, days: int = 90, now: datetime | None = None) -> HeatmapData:
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=max(days, HOURLY_DAYS))
    events = list(iter_events(root, cutoff=cutoff, skip_untouched=True))
    return HeatmapData(
        daily=aggregate_by_day(events, days, now),
        hourly=aggregate_by_hour(events, HOURLY_DAYS, now),
        generated_at=now,
    )
