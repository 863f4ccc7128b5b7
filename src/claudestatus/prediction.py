"""Burn-rate forecasts for the 5h rate-limit window and the daily budget."""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from .models import CostEvent, PredictionSnapshot

# Lookback used to sample the current burn rate
BURN_RATE_WINDOW = timedelta(minutes=30)

# Below this many seconds of headroom a heavy task is not recommended
HEAVY_TASK_SECONDS = 1800

RATE_LIMIT_REACHED = "Rate limit reached. Wait for reset."
CRITICAL = "Less than 10 min remaining. Save your work and pause."
WARNING = "Less than 30 min remaining. Wrap up current task."
CAUTION = "About 1 hour remaining. Plan your next task accordingly."
SAFE = "Plenty of capacity. Safe to start heavy tasks."


def calculate_burn_rate(events: Sequence[CostEvent], now: datetime | None = None) -> float:
    """USD per hour since the oldest sampled event.

    Returns 0 with fewer than two events: too little signal, not zero usage.
    ``events`` must be sorted oldest first.
    """
    if len(events) < 2:
        return 0.0
    now = now or datetime.now(UTC)
    total = sum(e.cost for e in events)
    span_hours = (now - events[0].timestamp).total_seconds() / 3600
    return total / span_hours if span_hours > 0 else 0.0


def build_recommendation(exhaustion_in: float) -> str:
    if exhaustion_in < 600:
        return CRITICAL
    if exhaustion_in < 1800:
        return WARNING
    if exhaustion_in < 3600:
        return CAUTION
    return SAFE


def compute_prediction(
    utilization_5h: float,
    reset_in_5h: float,
    cost_5h: float,
    cost_today: float,
    daily_budget: float | None,
    recent_events: Sequence[CostEvent],
    now: datetime | None = None,
) -> PredictionSnapshot:
    """Forecast rate-limit and budget exhaustion from the recent burn rate.

    The window's capacity in USD is inferred from how much of it the local
    5h cost represents (``cost_5h / utilization_5h``). The forecast is capped
    at the window reset, since the window cannot run out after it resets.
    """
    now = now or datetime.now(UTC)
    burn_rate = calculate_burn_rate(recent_events, now)

    exhaustion_time = None
    exhaustion_in = None
    safe = True
    recommendation = SAFE

    if utilization_5h >= 1.0:
        exhaustion_time = now
        exhaustion_in = 0.0
        safe = False
        recommendation = RATE_LIMIT_REACHED
    elif burn_rate > 0 and utilization_5h > 0:
        capacity_usd = cost_5h / utilization_5h
        remaining_usd = capacity_usd * (1.0 - utilization_5h)
        seconds = remaining_usd / burn_rate * 3600
        effective = min(seconds, reset_in_5h)

        exhaustion_time = now + timedelta(seconds=effective)
        exhaustion_in = effective
        safe = effective > HEAVY_TASK_SECONDS
        recommendation = build_recommendation(effective)

    budget_remaining = None
    budget_exhaustion_time = None
    if daily_budget is not None:
        remaining = daily_budget - cost_today
        budget_remaining = max(0.0, remaining)
        if remaining <= 0:
            budget_exhaustion_time = now
        elif burn_rate > 0:
            budget_exhaustion_time = now + timedelta(hours=remaining / burn_rate)

    return PredictionSnapshot(
        estimated_exhaustion_time=exhaustion_time,
        estimated_exhaustion_in=exhaustion_in,
        current_burn_rate=burn_rate,
        budget_remaining=budget_remaining,
        budget_exhaustion_time=budget_exhaustion_time,
        safe_to_start_heavy_task=safe,
        recommendation=recommendation,
    )
