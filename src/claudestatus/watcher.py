"""Polling watcher for new or modified session logs."""

import asyncio
import inspect
import logging
from collections.abc import Callable
from pathlib import Path

from .config import PROJECTS_DIR, WATCH_INTERVAL
from .scanner import iter_log_files

logger = logging.getLogger("claudestatus")


def _mtimes(root: Path) -> dict[Path, float]:
    result = {}
    for path in iter_log_files(root):
        try:
            result[path] = path.stat().st_mtime
        except OSError:
            continue
    return result


class LogWatcher:
    """Calls ``on_change`` whenever a ``.jsonl`` log under ``root`` is created or modified.

    Deletions are not reported.
    """

    def __init__(self, on_change: Callable, root: Path = PROJECTS_DIR, interval: float = WATCH_INTERVAL):
        self.root = root
        self.on_change = on_change
        self.interval = interval
        self._seen: dict[Path, float] | None = None
        self._task: asyncio.Task | None = None

    async def poll_once(self) -> bool:
        """Compare against the previous scan; the first call only records a baseline."""
        current = await asyncio.to_thread(_mtimes, self.root)
        previous, self._seen = self._seen, current
        if previous is None:
            return False
        changed = [p for p, mtime in current.items() if previous.get(p) != mtime]
        if not changed:
            return False
        logger.debug("Log change detected: %s", ", ".join(p.name for p in changed[:5]))
        result = self.on_change()
        if inspect.isawaitable(result):
            await result
        return True

    async def run(self):
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Log watcher poll failed")
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
