"""
Timer scheduling for the kiosk flow.

All kiosk timers (clock tick, countdown, idle guard, success hand-off and
the PIN auto-submit debounce) run on the single asyncio event loop. The
session owns them by name through NamedTimers so a step transition can tear
down exactly the timers of the step it leaves.

Callbacks may be plain functions or return an awaitable; awaitables are run
as tasks on the loop and their failures are logged.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Set

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Scheduler backed by loop.call_later."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, self._fire, callback)

    def _fire(self, callback: Callable[[], Any]) -> None:
        try:
            result = callback()
        except Exception:
            logger.exception("Timer callback failed")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            # Keep a reference until done, the loop only holds weak ones
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Timer task failed: %s", exc, exc_info=exc)

    async def aclose(self) -> None:
        """Cancel timer tasks still running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()


class NamedTimers:
    """One timer handle per name; starting a name replaces its previous timer."""

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._handles: Dict[str, TimerHandle] = {}

    def start(self, name: str, delay: float, callback: Callable[[], Any]) -> None:
        self.cancel(name)
        handle: Optional[TimerHandle] = None

        def fire():
            if self._handles.get(name) is not handle:
                return None
            del self._handles[name]
            return callback()

        handle = self._scheduler.call_later(delay, fire)
        self._handles[name] = handle

    def cancel(self, name: str) -> None:
        handle = self._handles.pop(name, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for name in list(self._handles):
            self.cancel(name)

    def is_active(self, name: str) -> bool:
        return name in self._handles

    @property
    def active(self) -> Set[str]:
        return set(self._handles)
