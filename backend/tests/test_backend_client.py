"""Tests for the kiosk backend HTTP client."""

from datetime import date, datetime, timezone

import httpx
import pytest

from kiosk_payloads import TIP_EMPLOYEE, punch_response
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
from timeclock.core.observability import correlation_id_var
from timeclock.schemas.kiosk import ClockStatus, EditRequest, TipRosterEmployee
from timeclock.services.pay_period import PayPeriod


class TestVerify:
    """Tests for store code verification."""

    @pytest.mark.asyncio
    async def test_verify_returns_tenant(self, backend, backend_client):
        tenant = await backend_client.verify("MAIN1")
        assert tenant.tenant_id == "t-1"
        assert tenant.tenant_name == "Main Street Cafe"
        assert backend.calls("verify") == [{"code": "MAIN1"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 404, 500])
    async def test_any_failure_is_not_found(self, backend, backend_client, status_code):
        backend.responses["verify"] = (status_code, {"error": "nope"})
        with pytest.raises(StoreNotFoundError):
            await backend_client.verify("NOPE")

    @pytest.mark.asyncio
    async def test_connection_error(self, backend, backend_client):
        backend.responses["verify"] = httpx.ConnectError("connection refused")
        with pytest.raises(TransportError):
            await backend_client.verify("MAIN1")


class TestPunch:
    """Tests for PIN submission."""

    @pytest.mark.asyncio
    async def test_punch_result(self, backend, backend_client):
        backend.responses["punch"] = (200, punch_response("clocked_in", TIP_EMPLOYEE))
        result = await backend_client.punch("t-1", "4321")
        assert isinstance(result.employee, TipRosterEmployee)
        assert result.status == ClockStatus.CLOCKED_IN
        assert result.active_entry_id == "entry-1"
        assert backend.calls("punch") == [{"tenantId": "t-1", "pin": "4321"}]

    @pytest.mark.asyncio
    async def test_rate_limited(self, backend, backend_client):
        backend.responses["punch"] = (429, {"error": "Too many attempts"})
        with pytest.raises(RateLimitedError):
            await backend_client.punch("t-1", "0000")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 404])
    async def test_rejected(self, backend, backend_client, status_code):
        backend.responses["punch"] = (status_code, {"error": "Invalid PIN"})
        with pytest.raises(PinRejectedError):
            await backend_client.punch("t-1", "0000")

    @pytest.mark.asyncio
    async def test_inconsistent_state_is_backend_error(self, backend, backend_client):
        payload = punch_response("clocked_in")
        payload["activeEntryId"] = None
        backend.responses["punch"] = (200, payload)
        with pytest.raises(BackendError):
            await backend_client.punch("t-1", "1234")

    @pytest.mark.asyncio
    async def test_correlation_id_forwarded(self, backend, backend_client):
        seen = {}

        def respond(request):
            seen["header"] = request.headers.get("X-Correlation-ID")
            return httpx.Response(200, json=punch_response())

        backend.responses["punch"] = respond
        token = correlation_id_var.set("abc-123")
        try:
            await backend_client.punch("t-1", "1234")
        finally:
            correlation_id_var.reset(token)
        assert seen["header"] == "abc-123"


class TestActions:
    """Tests for clock and break actions."""

    @pytest.mark.asyncio
    async def test_clock_in_body(self, backend, backend_client):
        employee = TipRosterEmployee.model_validate(TIP_EMPLOYEE)
        await backend_client.clock_in("t-1", employee)
        assert backend.calls("clock-in") == [{
            "tenantId": "t-1",
            "employeeId": "tip-7",
            "source": "tip_employee",
            "employeeName": "Sam Ortiz",
        }]

    @pytest.mark.asyncio
    async def test_break_end_uses_break_id(self, backend, backend_client):
        await backend_client.break_end("t-1", "break-1")
        assert backend.calls("break-end") == [{"tenantId": "t-1", "breakId": "break-1"}]

    @pytest.mark.asyncio
    async def test_action_failure(self, backend, backend_client):
        backend.responses["clock-out"] = (409, {"error": "Already clocked out"})
        with pytest.raises(ActionFailedError) as exc_info:
            await backend_client.clock_out("t-1", "e-1", "entry-1")
        assert exc_info.value.status_code == 409


class TestHours:
    """Tests for my-hours and edit requests."""

    @pytest.mark.asyncio
    async def test_my_hours_query(self, backend, backend_client):
        employee = TipRosterEmployee.model_validate(TIP_EMPLOYEE)
        period = PayPeriod(date(2026, 10, 16), date(2026, 10, 31))
        entries = await backend_client.my_hours("t-1", employee, period)
        assert [e.id for e in entries] == ["entry-1", "entry-2", "entry-3"]
        assert backend.calls("my-hours") == [{
            "tenantId": "t-1",
            "employeeId": "tip-7",
            "source": "tip_employee",
            "start": "2026-10-16",
            "end": "2026-10-31",
        }]

    @pytest.mark.asyncio
    async def test_my_hours_not_a_list(self, backend, backend_client):
        backend.responses["my-hours"] = (200, {"entries": []})
        employee = TipRosterEmployee.model_validate(TIP_EMPLOYEE)
        with pytest.raises(HoursUnavailableError):
            await backend_client.my_hours("t-1", employee, PayPeriod(date(2026, 10, 1), date(2026, 10, 15)))

    @pytest.mark.asyncio
    async def test_edit_request_body(self, backend, backend_client):
        request = EditRequest(
            entry_id="entry-1",
            corrected_clock_in=datetime(2026, 10, 16, 8, 45, tzinfo=timezone.utc),
            corrected_clock_out=None,
            reason="Forgot to punch in",
        )
        await backend_client.edit_request("t-1", "e-1", request)
        assert backend.calls("edit-request") == [{
            "tenantId": "t-1",
            "employeeId": "e-1",
            "entryId": "entry-1",
            "correctedClockIn": "2026-10-16T08:45:00Z",
            "correctedClockOut": None,
            "reason": "Forgot to punch in",
        }]

    @pytest.mark.asyncio
    async def test_edit_request_failure(self, backend, backend_client):
        backend.responses["edit-request"] = (400, {"error": "Pending edit exists"})
        request = EditRequest(entry_id="entry-1", reason="x")
        with pytest.raises(EditRequestFailedError):
            await backend_client.edit_request("t-1", "e-1", request)
