"""Pydantic models for claude-status usage data."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LimitStatus = Literal["allowed", "allowed_warning", "denied"]
DataSource = Literal["api", "cache", "stale", "no-credentials", "no-data"]

EPOCH = datetime.fromtimestamp(0, UTC)


def _utcnow():
    return datetime.now(UTC)


class TokenUsage(BaseModel):
    """Token counters from one assistant response (``message.usage`` in the logs)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    cache_read_input_tokens: int = Field(default=0, ge=0)
    cache_creation_input_tokens: int = Field(default=0, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_zero(cls, value):
        return 0 if value is None else value


class CostEvent(BaseModel):
    """One priced assistant response read from a project log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    cost: float
    usage: TokenUsage
    source_dir: Path
    source_file: Path

    @property
    def tokens(self) -> int:
        return self.usage.input_tokens + self.usage.output_tokens

    @property
    def hour(self) -> int:
        """Hour of day (0-23) in local time."""
        return self.timestamp.astimezone().hour


class QuotaSnapshot(BaseModel):
    """Rate-limit state for the 5h and 7d windows."""

    model_config = ConfigDict(frozen=True)

    utilization_5h: float = 0.0
    utilization_7d: float = 0.0
    reset_in_5h: float = 0.0  # seconds
    reset_in_7d: float = 0.0
    limit_status: LimitStatus = "allowed"


class CachedUsageData(BaseModel):
    """The ``usageData`` block of the cache file. Reset times are absolute epoch seconds."""

    model_config = ConfigDict(populate_by_name=True)

    utilization_5h: float = Field(alias="utilization5h")
    utilization_7d: float = Field(alias="utilization7d")
    reset_5h_at: float = Field(alias="reset5hAt")
    reset_7d_at: float = Field(alias="reset7dAt")
    limit_status: LimitStatus = Field(alias="limitStatus")


class QuotaCacheEntry(BaseModel):
    """The persisted quota cache file."""

    model_config = ConfigDict(populate_by_name=True)

    version: Literal[2] = 2
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")
    usage_data: CachedUsageData = Field(alias="usageData")


class AggregatedUsage(BaseModel):
    """Local cost and token totals for the whole install."""

    cost_5h: float = 0.0
    cost_day: float = 0.0
    cost_7d: float = 0.0
    tokens_in_5h: int = 0
    tokens_out_5h: int = 0
    tokens_cache_read_5h: int = 0
    tokens_cache_create_5h: int = 0


class UsageSnapshot(AggregatedUsage, QuotaSnapshot):
    """Quota state merged with local aggregates, as shown to display code."""

    model_config = ConfigDict(frozen=True)

    last_updated: datetime = Field(default_factory=_utcnow)
    cache_age_seconds: float = 0.0
    data_source: DataSource = "no-data"


class ProjectCostSnapshot(BaseModel):
    """Costs for one workspace, read from its own log directory."""

    model_config = ConfigDict(frozen=True)

    project_name: str
    project_path: Path
    cost_today: float = 0.0
    cost_7d: float = 0.0
    cost_30d: float = 0.0
    session_count: int = 0
    last_active: datetime = EPOCH


class PredictionSnapshot(BaseModel):
    """Burn-rate forecast for the 5h window and the daily budget."""

    model_config = ConfigDict(frozen=True)

    estimated_exhaustion_time: datetime | None = None
    estimated_exhaustion_in: float | None = None  # seconds
    current_burn_rate: float = 0.0  # USD/hour
    budget_remaining: float | None = None
    budget_exhaustion_time: datetime | None = None
    safe_to_start_heavy_task: bool = True
    recommendation: str = ""


class DailyUsage(BaseModel):
    date: str  # YYYY-MM-DD, local time
    cost: float = 0.0
    session_count: int = 0
    tokens_total: int = 0


class HourlyUsage(BaseModel):
    hour: int  # 0-23, local time
    avg_cost: float = 0.0
    count: int = 0


class HeatmapData(BaseModel):
    daily: list[DailyUsage] = Field(default_factory=list)
    hourly: list[HourlyUsage] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)
