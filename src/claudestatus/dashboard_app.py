"""Dashboard API for claude-status."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query

from .config import Settings
from .heatmap import get_heatmap_data
from .manager import UsageManager


def create_dashboard_app(manager: UsageManager | None = None, background: bool = True) -> FastAPI:
    manager = manager or UsageManager(Settings())

    @asynccontextmanager
    async def lifespan(app):
        # Cache first; the quota endpoint is only hit if the cache says so
        await manager.refresh()
        if background:
            manager.start()
        yield
        await manager.close()

    app = FastAPI(title="claude-status Dashboard", lifespan=lifespan)
    app.state.manager = manager

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "claude-status"}

    @app.get("/api/usage")
    async def api_usage():
        data = manager.last_data or await manager.get_usage_data()
        return data.model_dump(mode="json")

    @app.post("/api/refresh")
    async def api_refresh():
        data = await manager.force_refresh()
        if data is None:
            data = manager.last_data or await manager.get_usage_data()
        return data.model_dump(mode="json")

    @app.get("/api/projects")
    async def api_projects():
        return [p.model_dump(mode="json") for p in manager.last_project_costs]

    @app.get("/api/prediction")
    async def api_prediction():
        prediction = manager.last_prediction or await manager.get_prediction()
        return prediction.model_dump(mode="json") if prediction else None

    @app.get("/api/heatmap")
    async def api_heatmap(days: int = Query(90, ge=1, le=365)):
        data = await asyncio.to_thread(get_heatmap_data, manager.settings.projects_dir, days)
        return data.model_dump(mode="json")

    return app
