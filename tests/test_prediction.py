"""Tests for burn rate and exhaustion forecasts."""

from datetime import UTC, datetime, timedelta

import pytest

from claudestatus.prediction import (
    CAUTION,
    CRITICAL,
    RATE_LIMIT_REACHED,
    SAFE,
    WARNING,
    build_recommendation,
    calculate_burn_rate,
    compute_prediction,
)

from conftest import make_event

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def half_hour_sample(total=0.20):
    return [
        make_event(NOW - timedelta(minutes=30), total / 2),
        make_event(NOW - timedelta(minutes=15), total / 2),
    ]


def test_burn_rate_needs_two_events():
    assert calculate_burn_rate([], NOW) == 0
    assert calculate_burn_rate([make_event(NOW - timedelta(minutes=5), 1.0)], NOW) == 0


def test_burn_rate_over_half_hour():
    rate = calculate_burn_rate(half_hour_sample(), NOW)
    assert rate == pytest.approx(0.40)


def test_recommendation_tiers():
    assert build_recommendation(300) == CRITICAL
    assert "10 min" in build_recommendation(300)
    assert "30 min" in build_recommendation(1200)
    assert "1 hour" in build_recommendation(2700)
    assert "Plenty" in build_recommendation(7200)


def test_recommendation_boundaries():
    assert build_recommendation(599.9) == CRITICAL
    assert build_recommendation(600) == WARNING
    assert build_recommendation(1800) == CAUTION
    assert build_recommendation(3600) == SAFE


def test_rate_limit_reached():
    p = compute_prediction(1.0, 1200, 5.0, 5.0, None, half_hour_sample(), NOW)
    assert p.estimated_exhaustion_in == 0
    assert p.estimated_exhaustion_time == NOW
    assert not p.safe_to_start_heavy_task
    assert p.recommendation == RATE_LIMIT_REACHED


def test_exhaustion_capped_at_reset():
    # capacity $20, $10 left at $0.40/h would be 25h, but the window resets in 50 min
    p = compute_prediction(0.5, 3000, 10.0, 10.0, None, half_hour_sample(), NOW)
    assert p.estimated_exhaustion_in == 3000
    assert p.estimated_exhaustion_time == NOW + timedelta(seconds=3000)
    assert p.safe_to_start_heavy_task
    assert p.recommendation == CAUTION


def test_exhaustion_from_burn_rate():
    # capacity $1.00, $0.10 left at $0.40/h -> 15 min
    p = compute_prediction(0.9, 10_000, 0.9, 0.9, None, half_hour_sample(), NOW)
    assert p.estimated_exhaustion_in == pytest.approx(900)
    assert not p.safe_to_start_heavy_task
    assert p.recommendation == WARNING


def test_no_signal_means_no_estimate():
    p = compute_prediction(0.5, 3000, 10.0, 10.0, None, [], NOW)
    assert p.current_burn_rate == 0
    assert p.estimated_exhaustion_in is None
    assert p.estimated_exhaustion_time is None
    assert p.safe_to_start_heavy_task
    assert p.recommendation == SAFE


def test_budget_exhaustion():
    p = compute_prediction(0.1, 3000, 1.0, 1.0, 2.0, half_hour_sample(), NOW)
    assert p.budget_remaining == pytest.approx(1.0)
    assert (p.budget_exhaustion_time - NOW).total_seconds() == pytest.approx(9000)


def test_budget_already_spent():
    p = compute_prediction(0.1, 3000, 1.0, 3.0, 2.0, [], NOW)
    assert p.budget_remaining == 0
    assert p.budget_exhaustion_time == NOW


def test_budget_without_burn_rate():
    p = compute_prediction(0.1, 3000, 1.0, 1.0, 2.0, [], NOW)
    assert p.budget_remaining == pytest.approx(1.0)
    assert p.budget_exhaustion_time is None


def test_no_budget_configured():
    p = compute_prediction(0.1, 3000, 1.0, 1.0, None, half_hour_sample(), NOW)
    assert p.budget_remaining is None
    assert p.budget_exhaustion_time is None
