"""Pytest configuration and fixtures."""

import inspect
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from timeclock.core.config import Settings
from timeclock.services.backend_client import KioskBackendClient
from timeclock.services.kiosk_session import KioskSession
from timeclock.services.session_clock import SessionClock

from kiosk_payloads import BACKEND_URL, HOURS, TENANT, TODAY, punch_response


# ============== Fake timers ==============

class FakeTimer:
    def __init__(self, when: float, seq: int, callback: Callable[[], Any]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manually advanced scheduler. Awaitable callback results are awaited in order."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, self._seq, callback)
        self._seq += 1
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self._timers if not t.cancelled]

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = max(self.now, timer.when)
            result = timer.callback()
            if inspect.isawaitable(result):
                await result
        self.now = target


# ============== Fake backend ==============

class FakeBackend:
    """Records kiosk backend calls and answers with canned responses."""

    def __init__(self):
        self.requests: List[Tuple[str, str, Dict[str, Any]]] = []
        self.responses: Dict[str, Any] = {
            "verify": (200, TENANT),
            "punch": (200, punch_response()),
            "my-hours": (200, HOURS),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.split("/api/kiosk/", 1)[-1]
        if request.content:
            body = json.loads(request.content)
        else:
            body = dict(request.url.params)
        self.requests.append((request.method, endpoint, body))

        response = self.responses.get(endpoint, (200, {"success": True}))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        status_code, payload = response
        return httpx.Response(status_code, json=payload)

    def calls(self, endpoint: str) -> List[Dict[str, Any]]:
        return [body for _, e, body in self.requests if e == endpoint]


class KioskDriver:
    """Walks a session to the step a test starts from."""

    def __init__(self, session: KioskSession, scheduler: FakeScheduler, backend: FakeBackend):
        self.session = session
        self.scheduler = scheduler
        self.backend = backend

    async def unlock(self, code: str = "main1") -> None:
        self.session.set_store_code(code)
        await self.session.verify_store()

    async def enter_pin(self, pin: str = "1234") -> None:
        for digit in pin:
            self.session.press_key(digit)
        await self.scheduler.advance(0.1)

    async def to_confirm(self, status: str = "clocked_out", employee: Optional[dict] = None) -> None:
        self.backend.responses["punch"] = (200, punch_response(status, employee))
        await self.unlock()
        await self.enter_pin()


# ============== Fixtures ==============

@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, timezone="UTC", wake_lock_enabled=False, debug=True)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend_client(backend: FakeBackend) -> KioskBackendClient:
    http_client = httpx.AsyncClient(base_url=BACKEND_URL, transport=httpx.MockTransport(backend.handler))
    return KioskBackendClient(BACKEND_URL, http_client=http_client)


@pytest.fixture
def session(backend_client, scheduler, settings) -> KioskSession:
    clock = SessionClock(scheduler, tz=settings.tzinfo)
    return KioskSession(backend_client, scheduler, settings, clock=clock, today=lambda: TODAY)


@pytest.fixture
def kiosk(session, scheduler, backend) -> KioskDriver:
    return KioskDriver(session, scheduler, backend)


@pytest.fixture
def client(session, settings):
    """Test client for the display API, wired to the fake-timer session."""
    from timeclock.main import create_app

    app = create_app(session=session, settings=settings)
    with TestClient(app) as test_client:
        yield test_client
