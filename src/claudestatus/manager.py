"""Usage manager: merges remote quota state with local log aggregates.

The manager is constructed explicitly and handed to whatever displays its
data (CLI, dashboard). It owns three pieces of state, the last
``UsageSnapshot``, the last project cost list and the last
``PredictionSnapshot``. Each is replaced by a single assignment once a
computation has finished, so readers never see a half-updated value.
Overlapping refreshes are allowed; whichever finishes last wins.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from .aggregator import get_all_project_costs, read_all_usage
from .cache import QuotaCache, cache_age, cache_to_snapshot, is_cache_valid
from .config import Settings
from .errors import CredentialError, RemoteError
from .models import AggregatedUsage, ProjectCostSnapshot, PredictionSnapshot, QuotaCacheEntry, QuotaSnapshot, UsageSnapshot
from .prediction import BURN_RATE_WINDOW, compute_prediction
from .quota import QuotaClient
from .scanner import read_recent_events, was_updated_recently
from .watcher import LogWatcher

logger = logging.getLogger("claudestatus")


class UsageManager:
    def __init__(
        self,
        settings: Settings | None = None,
        quota_client: QuotaClient | None = None,
        cache: QuotaCache | None = None,
        workspaces: Iterable[str] = (),
    ):
        self.settings = settings or Settings()
        self.cache = cache or QuotaCache(self.settings.cache_path)
        self.quota_client = quota_client or QuotaClient(self.settings.credentials_path)
        self.workspaces = [str(w) for w in workspaces]

        self._subscribers: list[Callable] = []
        self._last_data: UsageSnapshot | None = None
        self._last_project_costs: list[ProjectCostSnapshot] = []
        self._last_prediction: PredictionSnapshot | None = None

        self._watcher = LogWatcher(self.refresh, self.settings.projects_dir, self.settings.watch_interval)
        self._poll_task: asyncio.Task | None = None

    # --- State readers ---

    @property
    def last_data(self) -> UsageSnapshot | None:
        return self._last_data

    @property
    def last_project_costs(self) -> list[ProjectCostSnapshot]:
        return self._last_project_costs

    @property
    def last_prediction(self) -> PredictionSnapshot | None:
        return self._last_prediction

    # --- Change notifications ---

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """Register ``callback(snapshot)``; returns a function that unsubscribes it.

        Subscribers are called in registration order. Events are not
        buffered, so a callback registered after a refresh never sees it.
        """
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Callable):
        self._subscribers = [cb for cb in self._subscribers if cb is not callback]

    async def _notify(self, snapshot: UsageSnapshot):
        for cb in list(self._subscribers):
            try:
                result = cb(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Usage subscriber failed")

    # --- Usage snapshot ---

    async def _read_local_usage(self) -> AggregatedUsage:
        try:
            return await asyncio.to_thread(read_all_usage, self.settings.projects_dir)
        except Exception:
            logger.exception("Failed to aggregate local usage")
            return AggregatedUsage()

    async def _should_call_api(self, entry: QuotaCacheEntry | None) -> bool:
        if entry is None:
            return True
        if is_cache_valid(entry, self.settings.cache_ttl_seconds):
            return False
        # Stale cache: only spend a request if the user is actually working
        return await asyncio.to_thread(
            was_updated_recently, self.settings.projects_dir, self.settings.activity_window_seconds
        )

    async def get_usage_data(self, force_refresh: bool = False) -> UsageSnapshot:
        """Build a fresh UsageSnapshot, calling the quota endpoint only when needed. Never raises."""
        local, entry = await asyncio.gather(
            self._read_local_usage(),
            asyncio.to_thread(self.cache.read),
        )

        quota: QuotaSnapshot | None = None
        data_source = "no-data"
        attempted = False

        if force_refresh or await self._should_call_api(entry):
            attempted = True
            try:
                quota = await self.quota_client.fetch()
            except CredentialError as e:
                logger.warning("Quota check skipped: %s", e)
            except RemoteError as e:
                logger.warning("Quota check failed: %s", e)
            except Exception:
                logger.exception("Unexpected quota check failure")
            else:
                await asyncio.to_thread(self.cache.write, quota)
                data_source = "api"

        if quota is None:
            if entry is not None:
                quota = cache_to_snapshot(entry)
                valid = is_cache_valid(entry, self.settings.cache_ttl_seconds)
                data_source = "cache" if valid else "stale"
            elif attempted:
                # A failed attempt with nothing cached reads as logged out
                data_source = "no-credentials"

        if data_source == "api" or entry is None:
            age = 0.0
        else:
            age = cache_age(entry)

        data = UsageSnapshot(
            **(quota or QuotaSnapshot()).model_dump(),
            **local.model_dump(),
            last_updated=datetime.now(UTC),
            cache_age_seconds=age,
            data_source=data_source,
        )
        self._last_data = data
        return data

    # --- Project costs ---

    async def refresh_project_costs(self) -> list[ProjectCostSnapshot]:
        try:
            costs = await get_all_project_costs(self.workspaces, self.settings.projects_dir)
        except Exception:
            logger.exception("Failed to compute project costs")
            return self._last_project_costs
        self._last_project_costs = costs
        return costs

    # --- Prediction ---

    async def get_prediction(self) -> PredictionSnapshot | None:
        """Recompute the forecast from the last snapshot.

        On failure the previous forecast is returned. Before the first
        snapshot exists there is nothing to forecast and None is returned.
        """
        data = self._last_data
        if data is None:
            return None
        try:
            now = datetime.now(UTC)
            events = await asyncio.to_thread(
                read_recent_events, self.settings.projects_dir, BURN_RATE_WINDOW, now
            )
            prediction = compute_prediction(
                data.utilization_5h,
                data.reset_in_5h,
                data.cost_5h,
                data.cost_day,
                self.settings.daily_budget_usd,
                events,
                now,
            )
        except Exception:
            logger.exception("Prediction failed, keeping previous forecast")
            return self._last_prediction
        self._last_prediction = prediction
        return prediction

    # --- Refresh cycle ---

    async def _refresh(self, force: bool) -> UsageSnapshot | None:
        try:
            data, _ = await asyncio.gather(
                self.get_usage_data(force),
                self.refresh_project_costs(),
            )
            # Prediction first, so subscribers reading last_prediction see the new one
            await self.get_prediction()
        except Exception:
            logger.exception("Refresh failed")
            return None
        await self._notify(data)
        return data

    async def refresh(self) -> UsageSnapshot | None:
        """Cache-first refresh; the quota endpoint is only called when the cache requires it."""
        return await self._refresh(False)

    async def force_refresh(self) -> UsageSnapshot | None:
        return await self._refresh(True)

    # --- Background triggers ---

    async def _poll(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            await self.refresh()

    def start(self, poll_interval: float | None = None):
        """Start the log watcher and the periodic refresh timer."""
        self._watcher.start()
        if self._poll_task is None or self._poll_task.done():
            interval = poll_interval if poll_interval is not None else self.settings.poll_interval
            self._poll_task = asyncio.create_task(self._poll(interval))

    async def close(self):
        await self._watcher.stop()
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.quota_client.aclose()
