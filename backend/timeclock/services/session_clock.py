"""
Session Clock
Repeating one-second tick driving the footer clock of the kiosk screen.
"""

import logging
from datetime import datetime, tzinfo
from typing import Callable, List, Optional

from timeclock.services.pay_period import format_clock_date, format_clock_time, local_now
from timeclock.services.timers import NamedTimers, Scheduler

logger = logging.getLogger(__name__)

TICK_TIMER = "clock_tick"


class SessionClock:
    """Live wall clock. Listeners are called with the new time on every tick."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        tick_seconds: float = 1.0,
        tz: Optional[tzinfo] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._timers = NamedTimers(scheduler)
        self._tick_seconds = tick_seconds
        self._tz = tz
        self._now_fn = now or (lambda: local_now(self._tz))
        self._listeners: List[Callable[[datetime], None]] = []
        self.now: datetime = self._now_fn()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._timers.is_active(TICK_TIMER)

    def add_listener(self, fn: Callable[[datetime], None]) -> None:
        self._listeners.append(fn)

    def start(self) -> None:
        if self.running:
            return
        self.now = self._now_fn()
        self._timers.start(TICK_TIMER, self._tick_seconds, self._tick)
        logger.debug("Session clock started")

    def stop(self) -> None:
        self._timers.cancel_all()

    def _tick(self) -> None:
        self._timers.start(TICK_TIMER, self._tick_seconds, self._tick)
        self.now = self._now_fn()
        self.ticks += 1
        for fn in list(self._listeners):
            try:
                fn(self.now)
            except Exception:
                logger.exception("Clock listener raised exception")

    @property
    def time_text(self) -> str:
        return format_clock_time(self.now)

    @property
    def date_text(self) -> str:
        return format_clock_date(self.now)
