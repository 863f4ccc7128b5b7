"""Configuration management for claude-status."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _expand(path: str) -> Path:
    return Path(os.path.expanduser(path))


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


CLAUDE_DIR = _expand(os.getenv("CLAUDE_STATUS_CLAUDE_DIR", "~/.claude"))
PROJECTS_DIR = _expand(os.getenv("CLAUDE_STATUS_PROJECTS_DIR", str(CLAUDE_DIR / "projects")))
CACHE_PATH = _expand(
    os.getenv("CLAUDE_STATUS_CACHE_PATH", str(CLAUDE_DIR / "vscode-claude-status-cache.json"))
)
CREDENTIALS_PATH = _expand(
    os.getenv("CLAUDE_STATUS_CREDENTIALS_PATH", str(CLAUDE_DIR / ".credentials.json"))
)

CACHE_TTL_SECONDS = int(os.getenv("CLAUDE_STATUS_CACHE_TTL", "300"))
DAILY_BUDGET_USD = _optional_float("CLAUDE_STATUS_DAILY_BUDGET")
POLL_INTERVAL = float(os.getenv("CLAUDE_STATUS_POLL_INTERVAL", "60"))
WATCH_INTERVAL = float(os.getenv("CLAUDE_STATUS_WATCH_INTERVAL", "2"))
DASHBOARD_PORT = int(os.getenv("CLAUDE_STATUS_DASHBOARD_PORT", "8879"))

# Logs touched within this many seconds count as "active" for stale-cache refetches
ACTIVITY_WINDOW_SECONDS = 300

ANTHROPIC_UPSTREAM = os.getenv("CLAUDE_STATUS_ANTHROPIC_URL", "https://api.anthropic.com")
ANTHROPIC_VERSION = "2023-06-01"
OAUTH_BETA = "oauth-2025-04-20"
QUOTA_MODEL = os.getenv("CLAUDE_STATUS_QUOTA_MODEL", "claude-haiku-4-5-20251001")

# Timeouts (seconds)
CONNECT_TIMEOUT = 5
OVERALL_TIMEOUT = 15

# Cost per 1M tokens in USD (Sonnet list price)
INPUT_PRICE = 3.00
OUTPUT_PRICE = 15.00
CACHE_READ_PRICE = 0.30
CACHE_CREATE_PRICE = 3.75


def calculate_cost(usage) -> float:
    """Estimate the USD cost of one assistant response.

    Accepts a ``TokenUsage`` or a raw usage mapping; missing counters count as 0.
    """
    if isinstance(usage, dict):
        get = usage.get
    else:
        def get(key, default=0):
            return getattr(usage, key, default)
    return (
        (get("input_tokens", 0) or 0) / 1_000_000 * INPUT_PRICE
        + (get("output_tokens", 0) or 0) / 1_000_000 * OUTPUT_PRICE
        + (get("cache_read_input_tokens", 0) or 0) / 1_000_000 * CACHE_READ_PRICE
        + (get("cache_creation_input_tokens", 0) or 0) / 1_000_000 * CACHE_CREATE_PRICE
    )


class Settings(BaseModel):
    """Read-only inputs consumed by the usage manager."""

    projects_dir: Path = PROJECTS_DIR
    cache_path: Path = CACHE_PATH
    credentials_path: Path | None = CREDENTIALS_PATH
    cache_ttl_seconds: int = CACHE_TTL_SECONDS
    daily_budget_usd: float | None = DAILY_BUDGET_USD
    activity_window_seconds: int = ACTIVITY_WINDOW_SECONDS
    poll_interval: float = POLL_INTERVAL
    watch_interval: float = WATCH_INTERVAL
