"""
Kiosk backend client.

HTTP client for the /api/kiosk/* contract of the hosted backend. Every call
either returns the parsed payload or raises one of the BackendError
subclasses from timeclock.core.exceptions; the kiosk session decides what
the employee sees.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from timeclock.core.config import Settings
from timeclock.core.exceptions import (
    ActionFailedError,
    BackendError,
    EditRequestFailedError,
    HoursUnavailableError,
    PinRejectedError,
    RateLimitedError,
    StoreNotFoundError,
    TransportError,
)
from timeclock.core.observability import CORRELATION_HEADER, get_correlation_id
from timeclock.schemas.kiosk import (
    EditRequest,
    EmployeeIdentity,
    HoursEntry,
    PunchResult,
    TenantContext,
)
from timeclock.services.pay_period import PayPeriod

logger = logging.getLogger(__name__)

KIOSK_API_PATH = "/api/kiosk"


class KioskBackendClient:
    """Async client for the kiosk endpoints of the backend."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "KioskBackendClient":
        return cls(settings.backend_url, timeout=settings.request_timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -----------------------
    # Transport
    # -----------------------
    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[CORRELATION_HEADER] = correlation_id
        try:
            resp = await self._client.request(
                method,
                f"{KIOSK_API_PATH}/{endpoint}",
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Kiosk backend {endpoint} unreachable: {e}")
            raise TransportError(f"Could not reach backend: {e}") from e
        logger.debug(f"Kiosk backend {method} {endpoint} -> {resp.status_code}")
        return resp

    @staticmethod
    def _json(resp: httpx.Response, endpoint: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {endpoint}", resp.status_code) from e

    # -----------------------
    # Store + PIN
    # -----------------------
    async def verify(self, code: str) -> TenantContext:
        """Exchange a store code for the tenant it belongs to."""
        resp = await self._request("POST", "verify", json={"code": code})
        if not resp.is_success:
            raise StoreNotFoundError(f"Store code {code!r} not found", resp.status_code)
        try:
            return TenantContext.model_validate(self._json(resp, "verify"))
        except ValueError as e:
            raise BackendError("Unexpected verify response", resp.status_code) from e

    async def punch(self, tenant_id: str, pin: str) -> PunchResult:
        """Authenticate a PIN; returns the employee and their clock state."""
        resp = await self._request("POST", "punch", json={"tenantId": tenant_id, "pin": pin})
        if resp.status_code == 429:
            raise RateLimitedError("Too many PIN attempts", resp.status_code)
        if not resp.is_success:
            raise PinRejectedError("PIN not recognized", resp.status_code)
        try:
            return PunchResult.model_validate(self._json(resp, "punch"))
        except ValueError as e:
            raise BackendError("Unexpected punch response", resp.status_code) from e

    # -----------------------
    # Punch actions
    # -----------------------
    async def _action(self, endpoint: str, body: Dict[str, Any]) -> None:
        resp = await self._request("POST", endpoint, json=body)
        if not resp.is_success:
            raise ActionFailedError(f"{endpoint} rejected", resp.status_code)

    async def clock_in(self, tenant_id: str, employee: EmployeeIdentity) -> None:
        await self._action("clock-in", {
            "tenantId": tenant_id,
            "employeeId": employee.id,
            "source": employee.source,
            "employeeName": employee.full_name,
        })

    async def clock_out(self, tenant_id: str, employee_id: str, entry_id: str) -> None:
        await self._action("clock-out", {
            "tenantId": tenant_id,
            "employeeId": employee_id,
            "entryId": entry_id,
        })

    async def break_start(self, tenant_id: str, employee_id: str, entry_id: str) -> None:
        await self._action("break-start", {
            "tenantId": tenant_id,
            "employeeId": employee_id,
            "entryId": entry_id,
        })

    async def break_end(self, tenant_id: str, break_id: str) -> None:
        await self._action("break-end", {"tenantId": tenant_id, "breakId": break_id})

    # -----------------------
    # My Hours
    # -----------------------
    async def my_hours(self, tenant_id: str, employee: EmployeeIdentity, period: PayPeriod) -> List[HoursEntry]:
        resp = await self._request("GET", "my-hours", params={
            "tenantId": tenant_id,
            "employeeId": employee.id,
            "source": employee.source,
            "start": period.start_iso,
            "end": period.end_iso,
        })
        if not resp.is_success:
            raise HoursUnavailableError("my-hours failed", resp.status_code)
        data = self._json(resp, "my-hours")
        if not isinstance(data, list):
            raise HoursUnavailableError("my-hours did not return a list", resp.status_code)
        try:
            return [HoursEntry.model_validate(item) for item in data]
        except ValueError as e:
            raise HoursUnavailableError("Unexpected my-hours response", resp.status_code) from e

    async def edit_request(self, tenant_id: str, employee_id: str, request: EditRequest) -> None:
        def iso(value):
            return value.isoformat().replace("+00:00", "Z") if value else None

        resp = await self._request("POST", "edit-request", json={
            "tenantId": tenant_id,
            "employeeId": employee_id,
            "entryId": request.entry_id,
            "correctedClockIn": iso(request.corrected_clock_in),
            "correctedClockOut": iso(request.corrected_clock_out),
            "reason": request.reason,
        })
        if not resp.is_success:
            raise EditRequestFailedError("edit-request rejected", resp.status_code)
