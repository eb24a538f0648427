"""
Display Wake Lock
Keeps the kiosk screen from blanking while the time clock is up.

The lock is an optional capability: when no provider is available every
call is a silent no-op. Providers can lose the lock when the display is
hidden, so the manager re-acquires whenever the display reports it is
visible again.
"""

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from timeclock.core.config import Settings

logger = logging.getLogger(__name__)


class WakeLockProvider(ABC):
    """A platform mechanism that can hold the screen on."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logs."""

    @abstractmethod
    async def acquire(self) -> None:
        """Keep the screen on."""

    @abstractmethod
    async def release(self) -> None:
        """Allow the screen to blank again."""


class XsetWakeLock(WakeLockProvider):
    """Disable X11 screen saver and DPMS blanking through ``xset``."""

    name = "xset"

    ACQUIRE_ARGS = ("s", "off", "s", "noblank", "-dpms")
    RELEASE_ARGS = ("s", "on", "+dpms")

    def __init__(self, executable: str, display: str):
        self._executable = executable
        self._display = display

    async def _run(self, args: Sequence[str]) -> None:
        process = await asyncio.create_subprocess_exec(
            self._executable, "-display", self._display, *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise RuntimeError(f"xset exited {process.returncode}: {stderr.decode(errors='replace').strip()}")

    async def acquire(self) -> None:
        await self._run(self.ACQUIRE_ARGS)

    async def release(self) -> None:
        await self._run(self.RELEASE_ARGS)


def detect_wake_lock_provider(settings: Settings) -> Optional[WakeLockProvider]:
    """Return the provider usable on this host, or None."""
    if not settings.wake_lock_enabled:
        return None
    if not settings.display:
        return None
    executable = shutil.which("xset")
    if not executable:
        return None
    return XsetWakeLock(executable, settings.display)


class WakeLockManager:
    """Acquire on start, re-acquire on visibility, release on teardown."""

    def __init__(self, provider: Optional[WakeLockProvider] = None):
        self._provider = provider
        self.held = False
        # Hiding the display does not undo the provider, release still has to
        self._acquired = False

    @property
    def supported(self) -> bool:
        return self._provider is not None

    async def acquire(self) -> None:
        if self._provider is None:
            return
        try:
            await self._provider.acquire()
        except Exception as e:
            # Denied or unsupported at runtime; the kiosk keeps working
            logger.debug(f"Wake lock ({self._provider.name}) not acquired: {e}")
            return
        self.held = True
        self._acquired = True
        logger.debug(f"Wake lock acquired ({self._provider.name})")

    async def on_visibility_change(self, visible: bool) -> None:
        if visible:
            await self.acquire()
        else:
            # Hidden pages lose the lock on most hosts
            self.held = False

    async def release(self) -> None:
        if self._provider is None or not self._acquired:
            return
        self.held = False
        self._acquired = False
        try:
            await self._provider.release()
        except Exception as e:
            logger.debug(f"Wake lock ({self._provider.name}) release failed: {e}")
