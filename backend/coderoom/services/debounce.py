"""Keyed, cancellable delayed tasks for the asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class Debouncer:
    """At most one pending task per key.

    ``schedule`` cancels whatever is pending for the key and replaces it, so a
    burst of calls collapses into the last one. Must be used from inside a
    running event loop.
    """

    def __init__(self, delay: float, name: str = "debounce"):
        self.delay = delay
        self.name = name
        self._tasks: Dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, action: Action, delay: Optional[float] = None) -> asyncio.Task:
        self.cancel(key)
        wait = self.delay if delay is None else delay
        task = asyncio.get_running_loop().create_task(self._run(key, wait, action))
        self._tasks[key] = task
        return task

    async def _run(self, key: Hashable, wait: float, action: Action) -> None:
        try:
            await asyncio.sleep(wait)
        except asyncio.CancelledError:
            return
        current = asyncio.current_task()
        # Detach before running so a re-schedule from inside the action is kept
        if self._tasks.get(key) is current:
            del self._tasks[key]
        try:
            await action()
        except Exception:
            logger.exception("%s action for %r failed", self.name, key)

    def cancel(self, key: Hashable) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def pending(self, key: Hashable) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def flush(self, key: Hashable, action: Action) -> None:
        """Cancel the pending task for ``key`` and run ``action`` now."""
        self.cancel(key)
        await action()

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)
