"""On-disk cache of the last quota snapshot.

Reset times are stored as absolute epoch seconds so that "seconds until
reset" can be recomputed correctly however long ago the entry was written.
Version 1 files stored relative seconds; they are rejected, not migrated.
"""

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from .config import CACHE_PATH
from .errors import CacheReadError, CacheWriteError
from .models import CachedUsageData, QuotaCacheEntry, QuotaSnapshot

logger = logging.getLogger("claudestatus")

CACHE_VERSION = 2


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


class QuotaCache:
    def __init__(self, path=None):
        self.path = Path(path) if path else CACHE_PATH

    def load(self) -> QuotaCacheEntry:
        """Read and validate the cache file, raising ``CacheReadError`` on any problem."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise CacheReadError(f"no cache at {self.path}") from e
        except (OSError, ValueError) as e:
            raise CacheReadError(f"unreadable cache {self.path}: {e}") from e

        if not isinstance(raw, dict) or raw.get("version") != CACHE_VERSION:
            version = raw.get("version") if isinstance(raw, dict) else None
            raise CacheReadError(f"unsupported cache version {version!r}")
        try:
            return QuotaCacheEntry.model_validate(raw)
        except ValidationError as e:
            raise CacheReadError(f"malformed cache {self.path}: {e.error_count()} errors") from e

    def read(self) -> QuotaCacheEntry | None:
        """The cached entry, or None on a miss."""
        try:
            return self.load()
        except CacheReadError as e:
            logger.debug("Quota cache miss: %s", e)
            return None

    def save(self, snapshot: QuotaSnapshot, now: datetime | None = None) -> QuotaCacheEntry:
        """Persist ``snapshot``, raising ``CacheWriteError`` if the file cannot be written."""
        now = _now(now)
        now_sec = now.timestamp()
        entry = QuotaCacheEntry(
            updated_at=now,
            usage_data=CachedUsageData(
                utilization_5h=snapshot.utilization_5h,
                utilization_7d=snapshot.utilization_7d,
                reset_5h_at=now_sec + snapshot.reset_in_5h,
                reset_7d_at=now_sec + snapshot.reset_in_7d,
                limit_status=snapshot.limit_status,
            ),
        )
        tmp = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Unique temp name per writer; overlapping refreshes may save at once
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=self.path.name, suffix=".tmp", delete=False
            ) as f:
                tmp = Path(f.name)
                f.write(entry.model_dump_json(by_alias=True, indent=2))
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise CacheWriteError(f"cannot write {self.path}: {e}") from e
        return entry

    def write(self, snapshot: QuotaSnapshot, now: datetime | None = None) -> QuotaCacheEntry | None:
        """Persist ``snapshot``; a failure is logged and ignored."""
        try:
            return self.save(snapshot, now)
        except CacheWriteError as e:
            logger.warning("Quota cache not written: %s", e)
            return None


def cache_age(entry: QuotaCacheEntry, now: datetime | None = None) -> float:
    """Seconds since the entry was written, never negative."""
    return max(0.0, (_now(now) - _aware(entry.updated_at)).total_seconds())


def is_cache_valid(entry: QuotaCacheEntry, ttl_seconds: float, now: datetime | None = None) -> bool:
    """True while the entry is younger than ``ttl_seconds``; an entry exactly at the TTL is stale."""
    return (_now(now) - _aware(entry.updated_at)).total_seconds() < ttl_seconds


def cache_to_snapshot(entry: QuotaCacheEntry, now: datetime | None = None) -> QuotaSnapshot:
    """Rebuild a QuotaSnapshot, recomputing time-to-reset from the stored absolute times."""
    now_sec = _now(now).timestamp()
    data = entry.usage_data
    return QuotaSnapshot(
        utilization_5h=data.utilization_5h,
        utilization_7d=data.utilization_7d,
        reset_in_5h=max(0.0, data.reset_5h_at - now_sec),
        reset_in_7d=max(0.0, data.reset_7d_at - now_sec),
        limit_status=data.limit_status,
    )
