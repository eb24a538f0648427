"""Tests for the kiosk display API."""

from kiosk_payloads import punch_response

API = "/api/v1/kiosk"


def unlock(client):
    client.put(f"{API}/store-code", json={"code": "main1"})
    return client.post(f"{API}/store/verify")


def sign_in(client, scheduler):
    unlock(client)
    for digit in "1234":
        client.post(f"{API}/keypad/{digit}")
    client.portal.call(scheduler.advance, 0.1)
    return client.get(f"{API}/state").json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["step"] == "store_code"


class TestState:
    """Snapshot endpoint."""

    def test_initial_state(self, client):
        response = client.get(f"{API}/state")
        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "store_code"
        assert data["pin_length"] == 0
        assert data["footer"]["time"]
        assert data["employee"] is None

    def test_correlation_id_echoed(self, client):
        response = client.get(f"{API}/state", headers={"X-Correlation-ID": "display-42"})
        assert response.headers["X-Correlation-ID"] == "display-42"

    def test_correlation_id_generated(self, client):
        response = client.get(f"{API}/state")
        assert response.headers.get("X-Correlation-ID")


class TestStoreEndpoints:
    """Store code endpoints."""

    def test_verify(self, client):
        response = unlock(client)
        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "pin_entry"
        assert data["store_code"] == "MAIN1"
        assert data["tenant"]["tenant_name"] == "Main Street Cafe"

    def test_not_found(self, client, backend):
        backend.responses["verify"] = (404, {})
        data = unlock(client).json()
        assert data["step"] == "store_code"
        assert data["error"] == "Store not found. Check your code."

    def test_change_store(self, client):
        unlock(client)
        data = client.post(f"{API}/store/change").json()
        assert data["step"] == "store_code"
        assert data["tenant"] is None

    def test_store_code_too_long(self, client):
        response = client.put(f"{API}/store-code", json={"code": "X" * 40})
        assert response.status_code == 422


class TestKeypadEndpoints:
    """Keypad input over HTTP."""

    def test_digits_tracked_without_exposing_pin(self, client):
        unlock(client)
        client.post(f"{API}/keypad/1")
        data = client.post(f"{API}/keypad/2").json()
        assert data["pin_length"] == 2
        assert "pin" not in data

    def test_unknown_key(self, client):
        unlock(client)
        assert client.post(f"{API}/keypad/X").status_code == 400

    def test_keypad_on_wrong_step(self, client):
        response = client.post(f"{API}/keypad/1")
        assert response.status_code == 409
        assert "press_key" in response.json()["detail"]

    def test_sign_in(self, client, scheduler, backend):
        backend.responses["punch"] = (200, punch_response("clocked_in"))
        data = sign_in(client, scheduler)
        assert data["step"] == "confirm"
        assert data["employee"]["full_name"] == "Dana Reyes"
        assert data["employee"]["source"] == "user_profile"
        assert data["clock_state"]["status"] == "clocked_in"
        assert data["primary_action"]["action"] == "clock_out"
        assert data["secondary_action"]["action"] == "break_start"


class TestPunchEndpoints:
    """Action selection and countdown over HTTP."""

    def test_select_action_starts_countdown(self, client, scheduler):
        sign_in(client, scheduler)
        data = client.post(f"{API}/actions/clock_in").json()
        assert data["step"] == "countdown"
        assert data["countdown"] == 5

    def test_unoffered_action(self, client, scheduler):
        sign_in(client, scheduler)
        assert client.post(f"{API}/actions/break_end").status_code == 409

    def test_unknown_action(self, client, scheduler):
        sign_in(client, scheduler)
        assert client.post(f"{API}/actions/teleport").status_code == 422

    def test_cancel_countdown(self, client, scheduler, backend):
        sign_in(client, scheduler)
        client.post(f"{API}/actions/clock_in")
        data = client.post(f"{API}/countdown/cancel").json()
        assert data["step"] == "confirm"
        client.portal.call(scheduler.advance, 10)
        assert backend.calls("clock-in") == []

    def test_countdown_completes(self, client, scheduler, backend):
        sign_in(client, scheduler)
        client.post(f"{API}/actions/clock_in")
        client.portal.call(scheduler.advance, 5)
        data = client.get(f"{API}/state").json()
        assert data["step"] == "success"
        assert data["success_message"] == "Clocked In!"
        assert len(backend.calls("clock-in")) == 1

    def test_done(self, client, scheduler):
        sign_in(client, scheduler)
        data = client.post(f"{API}/done").json()
        assert data["step"] == "pin_entry"
        assert data["employee"] is None


class TestHoursEndpoints:
    """My Hours and edit endpoints."""

    def test_hours_and_edit_flow(self, client, scheduler, backend):
        sign_in(client, scheduler)
        data = client.post(f"{API}/my-hours").json()
        assert data["step"] == "my_hours"
        assert data["pay_period_start"] == "2026-10-16"
        assert data["total_hours_label"] == "12:00"
        assert len(data["hours_entries"]) == 3

        data = client.post(f"{API}/entries/entry-1/edit").json()
        assert data["step"] == "edit_entry"
        assert data["edit_draft"]["clock_in_time"] == "09:00"

        data = client.put(f"{API}/edit", json={"reason": "Forgot to clock out"}).json()
        assert data["edit_draft"]["reason"] == "Forgot to clock out"

        data = client.post(f"{API}/edit/submit").json()
        assert data["step"] == "my_hours"
        assert len(backend.calls("edit-request")) == 1

    def test_unknown_entry(self, client, scheduler):
        sign_in(client, scheduler)
        client.post(f"{API}/my-hours")
        assert client.post(f"{API}/entries/nope/edit").status_code == 404

    def test_entry_with_pending_edit(self, client, scheduler):
        sign_in(client, scheduler)
        client.post(f"{API}/my-hours")
        assert client.post(f"{API}/entries/entry-2/edit").status_code == 409

    def test_invalid_draft_time(self, client, scheduler):
        sign_in(client, scheduler)
        client.post(f"{API}/my-hours")
        client.post(f"{API}/entries/entry-1/edit")
        assert client.put(f"{API}/edit", json={"clock_in_time": "9am"}).status_code == 422

    def test_back_navigation(self, client, scheduler):
        sign_in(client, scheduler)
        client.post(f"{API}/my-hours")
        client.post(f"{API}/entries/entry-1/edit")
        assert client.post(f"{API}/edit/back").json()["step"] == "my_hours"
        assert client.post(f"{API}/my-hours/back").json()["step"] == "confirm"

    def test_touch_and_idle(self, client, scheduler):
        sign_in(client, scheduler)
        client.post(f"{API}/my-hours")
        client.portal.call(scheduler.advance, 50)
        client.post(f"{API}/touch")
        client.portal.call(scheduler.advance, 50)
        assert client.get(f"{API}/state").json()["step"] == "my_hours"
        client.portal.call(scheduler.advance, 10)
        assert client.get(f"{API}/state").json()["step"] == "pin_entry"


class TestVisibility:
    def test_visibility_signal(self, client):
        response = client.post(f"{API}/visibility", json={"visible": True})
        assert response.status_code == 200
