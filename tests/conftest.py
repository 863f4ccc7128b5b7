"""Shared fixtures: fake project logs, settings pointing at tmp_path, a fake quota client."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from claudestatus.config import Settings
from claudestatus.errors import CredentialError
from claudestatus.models import CostEvent, QuotaSnapshot, TokenUsage


def iso(ts: datetime) -> str:
    return ts.astimezone(UTC).isoformat().replace("+00:00", "Z")


def assistant_record(ts: datetime, input_tokens=0, output_tokens=0, cache_read=0, cache_create=0, cwd="/home/user/app"):
    return {
        "type": "assistant",
        "timestamp": iso(ts),
        "cwd": cwd,
        "message": {
            "model": "claude-sonnet-4-5-20250929",
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "cache_read_input_tokens": cache_read,
                "cache_creation_input_tokens": cache_create,
            },
        },
    }


@pytest.fixture
def projects_dir(tmp_path) -> Path:
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def write_log(projects_dir):
    """write_log(project, session, records) -> path. Records may be dicts or raw strings."""

    def _write(project: str, session: str, records) -> Path:
        project_dir = projects_dir / project
        project_dir.mkdir(exist_ok=True)
        path = project_dir / f"{session}.jsonl"
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(tmp_path, projects_dir) -> Settings:
    return Settings(
        projects_dir=projects_dir,
        cache_path=tmp_path / "cache.json",
        credentials_path=tmp_path / "missing-credentials.json",
        cache_ttl_seconds=300,
        daily_budget_usd=None,
    )


def make_event(ts: datetime, cost: float, input_tokens=0, output_tokens=0) -> CostEvent:
    return CostEvent(
        timestamp=ts,
        cost=cost,
        usage=TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens),
        source_dir=Path("/logs/project"),
        source_file=Path("/logs/project/session.jsonl"),
    )


class FakeQuotaClient:
    """Stands in for QuotaClient; returns ``snapshot`` or raises ``error``."""

    def __init__(self, snapshot: QuotaSnapshot | None = None, error: Exception | None = None):
        self.snapshot = snapshot or QuotaSnapshot(
            utilization_5h=0.4, utilization_7d=0.2, reset_in_5h=3600, reset_in_7d=86400, limit_status="allowed"
        )
        self.error = error
        self.calls = 0
        self.closed = False

    async def fetch(self) -> QuotaSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot

    async def aclose(self):
        self.closed = True


@pytest.fixture
def quota_client():
    return FakeQuotaClient()


@pytest.fixture
def no_credentials_client():
    return FakeQuotaClient(error=CredentialError("credentials file not found"))
