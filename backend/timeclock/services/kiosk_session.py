"""
services/kiosk_session.py

State machine of the unattended time-clock kiosk.

Steps:
    store_code -> pin_entry -> confirm -> countdown -> success -> pin_entry
                                  |  ^         |
                                  |  +---------+ (cancel, or failed action)
                                  v
                               my_hours <-> edit_entry

Responsibilities:
- Resolve the store code to a tenant and collect the 4-digit PIN.
- Offer the punch action derived from the backend clock status, count it
  down and execute it exactly once.
- Show the pay-period hours and submit correction requests.
- Hand the kiosk back to the locked PIN step after a punch and after
  inactivity on the hours screens.

Timers are owned by name and torn down on every step transition. At most one
backend request is in flight; the generation counter discards results that
arrive after the kiosk was handed back to the PIN step.
"""

import logging
from datetime import date
from typing import Callable, List, Optional

from timeclock.core.config import Settings
from timeclock.core.exceptions import (
    BackendError,
    EntryNotEditableError,
    EntryNotFoundError,
    KioskBusyError,
    KioskStateError,
    PinRejectedError,
    RateLimitedError,
    StoreNotFoundError,
)
from timeclock.schemas.kiosk import (
    ClockFooter,
    ClockState,
    EditDraft,
    EditDraftUpdate,
    EditRequest,
    EmployeeIdentity,
    HoursEntry,
    HoursEntryView,
    KioskStep,
    KioskView,
    PendingAction,
    TenantContext,
)
from timeclock.services.backend_client import KioskBackendClient
from timeclock.services.pay_period import (
    PayPeriod,
    combine_local,
    format_entry_date,
    format_hm,
    format_time,
    local_now,
    semi_monthly_period,
    split_local,
)
from timeclock.services.punch_actions import (
    SUCCESS_MESSAGES,
    action_option,
    available_actions,
    primary_action,
    secondary_action,
    status_label,
)
from timeclock.services.session_clock import SessionClock
from timeclock.services.timers import NamedTimers, Scheduler
from timeclock.services.wake_lock import WakeLockManager

logger = logging.getLogger(__name__)

# Timer names
PIN_SUBMIT_TIMER = "pin_submit"
COUNTDOWN_TIMER = "countdown"
SUCCESS_TIMER = "success"
IDLE_TIMER = "idle"

IDLE_GUARDED_STEPS = (KioskStep.MY_HOURS, KioskStep.EDIT_ENTRY)

CLEAR_KEY = "CLR"
BACKSPACE_KEY = "DEL"
KEYPAD_KEYS = frozenset("0123456789") | {CLEAR_KEY, BACKSPACE_KEY}

# Inline messages
MSG_STORE_NOT_FOUND = "Store not found. Check your code."
MSG_CONNECTION = "Connection error. Try again."
MSG_RATE_LIMITED = "Too many attempts. Wait a moment."
MSG_PIN_REJECTED = "PIN not recognized."
MSG_ACTION_FAILED = "Action failed. Please try again."
MSG_HOURS_FAILED = "Could not load hours. Try again."
MSG_REASON_REQUIRED = "Please enter a reason."
MSG_INVALID_DATETIME = "Enter a valid date and time."
MSG_EDIT_FAILED = "Failed to submit request. Try again."


class KioskSession:
    """One kiosk screen: the employee currently at the terminal, and the step they are on."""

    def __init__(
        self,
        backend: KioskBackendClient,
        scheduler: Scheduler,
        settings: Settings,
        *,
        clock: Optional[SessionClock] = None,
        wake_lock: Optional[WakeLockManager] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._backend = backend
        self._settings = settings
        self._tz = settings.tzinfo
        self._timers = NamedTimers(scheduler)
        self.clock = clock or SessionClock(scheduler, tick_seconds=settings.clock_tick_seconds, tz=self._tz)
        self.wake_lock = wake_lock or WakeLockManager()
        self._today = today or (lambda: local_now(self._tz).date())

        self.step = KioskStep.STORE_CODE
        self.store_code = ""
        self.tenant: Optional[TenantContext] = None
        self._pin = ""
        self.pin_error = False
        self.employee: Optional[EmployeeIdentity] = None
        self.clock_state: Optional[ClockState] = None
        self.pending_action: Optional[PendingAction] = None
        self.countdown = 0
        self.success_message: Optional[str] = None
        self.error: Optional[str] = None
        self.loading = False
        self.loading_hours = False
        self.pay_period: Optional[PayPeriod] = None
        self.hours_entries: List[HoursEntry] = []
        self.editing_entry: Optional[HoursEntry] = None
        self.edit_draft: Optional[EditDraft] = None
        self._generation = 0

    # -----------------------
    # Lifecycle
    # -----------------------
    async def start(self) -> None:
        self.clock.start()
        await self.wake_lock.acquire()
        logger.info("Kiosk session started")

    async def close(self) -> None:
        self._timers.cancel_all()
        self.clock.stop()
        await self.wake_lock.release()
        logger.info("Kiosk session closed")

    async def set_visibility(self, visible: bool) -> None:
        await self.wake_lock.on_visibility_change(visible)

    @property
    def pin_length(self) -> int:
        return len(self._pin)

    @property
    def active_timers(self):
        return self._timers.active

    # -----------------------
    # Internals
    # -----------------------
    def _require_step(self, operation: str, *steps: KioskStep) -> None:
        if self.step not in steps:
            raise KioskStateError(operation, self.step.value)

    def _require_idle(self) -> None:
        if self.loading:
            raise KioskBusyError("A request is already in progress")

    def _transition(self, step: KioskStep) -> None:
        self._timers.cancel_all()
        logger.debug(f"Kiosk step {self.step.value} -> {step.value}")
        self.step = step

        if step == KioskStep.COUNTDOWN:
            self._timers.start(COUNTDOWN_TIMER, 1.0, self._countdown_tick)
        elif step == KioskStep.SUCCESS:
            self._timers.start(SUCCESS_TIMER, self._settings.success_display_seconds, self._return_to_pin)
        elif step in IDLE_GUARDED_STEPS:
            self._restart_idle_timer()

    def _return_to_pin(self) -> None:
        """Lock the kiosk: PIN buffer and employee identity are always cleared together."""
        self._generation += 1
        self._pin = ""
        self.pin_error = False
        self.employee = None
        self.clock_state = None
        self.pending_action = None
        self.countdown = 0
        self.success_message = None
        self.error = None
        self.pay_period = None
        self.hours_entries = []
        self.editing_entry = None
        self.edit_draft = None
        self._transition(KioskStep.PIN_ENTRY)

    # -----------------------
    # Store Resolver
    # -----------------------
    def set_store_code(self, code: str) -> None:
        self._require_step("set_store_code", KioskStep.STORE_CODE)
        self._require_idle()
        self.store_code = code.upper()
        self.error = None

    async def verify_store(self) -> None:
        self._require_step("verify_store", KioskStep.STORE_CODE)
        self._require_idle()
        code = self.store_code.strip()
        if not code:
            return

        self.loading = True
        self.error = None
        try:
            tenant = await self._backend.verify(code)
        except StoreNotFoundError:
            self.error = MSG_STORE_NOT_FOUND
            return
        except BackendError as e:
            logger.warning(f"Store verification failed: {e}")
            self.error = MSG_CONNECTION
            return
        finally:
            self.loading = False

        logger.info(f"Kiosk bound to store {tenant.tenant_name} ({tenant.tenant_id})")
        self.store_code = code
        self.tenant = tenant
        self._pin = ""
        self.pin_error = False
        self._transition(KioskStep.PIN_ENTRY)

    def change_store(self) -> None:
        self._require_step("change_store", KioskStep.PIN_ENTRY)
        self._require_idle()
        self.store_code = ""
        self.tenant = None
        self._pin = ""
        self.pin_error = False
        self.error = None
        self._transition(KioskStep.STORE_CODE)

    # -----------------------
    # PIN Authenticator
    # -----------------------
    def press_key(self, key: str) -> None:
        """Keypad input: a digit, CLR or DEL. The 4th digit auto-submits."""
        if key not in KEYPAD_KEYS:
            raise ValueError(f"Unknown keypad key: {key!r}")
        self._require_step("press_key", KioskStep.PIN_ENTRY)
        self._require_idle()

        if key == CLEAR_KEY:
            self._timers.cancel(PIN_SUBMIT_TIMER)
            self._pin = ""
            self.pin_error = False
            self.error = None
            return
        if key == BACKSPACE_KEY:
            self._timers.cancel(PIN_SUBMIT_TIMER)
            self._pin = self._pin[:-1]
            return

        self.pin_error = False
        self.error = None
        if len(self._pin) >= self._settings.pin_length:
            return
        self._pin += key
        if len(self._pin) == self._settings.pin_length:
            pin = self._pin
            self._timers.start(
                PIN_SUBMIT_TIMER,
                self._settings.pin_submit_delay_seconds,
                lambda: self._submit_pin(pin),
            )

    async def _submit_pin(self, pin: str) -> None:
        if self.step != KioskStep.PIN_ENTRY or self.tenant is None:
            return
        generation = self._generation
        self.loading = True
        self.error = None
        try:
            result = await self._backend.punch(self.tenant.tenant_id, pin)
        except RateLimitedError:
            self._reject_pin(MSG_RATE_LIMITED, shake=True)
            return
        except PinRejectedError:
            self._reject_pin(MSG_PIN_REJECTED, shake=True)
            return
        except BackendError as e:
            logger.warning(f"PIN submission failed: {e}")
            self._reject_pin(MSG_CONNECTION, shake=False)
            return
        finally:
            self.loading = False

        if generation != self._generation or self.step != KioskStep.PIN_ENTRY:
            return
        self.employee = result.employee
        self.clock_state = ClockState(
            status=result.status,
            active_entry_id=result.active_entry_id,
            clock_in_time=result.clock_in_time,
            active_break_id=result.active_break_id,
            break_start_time=result.break_start_time,
        )
        self.pending_action = primary_action(self.clock_state.status)
        self._pin = ""
        logger.info(
            f"Employee {self.employee.id} ({self.employee.source}) authenticated, "
            f"status={self.clock_state.status.value}"
        )
        self._transition(KioskStep.CONFIRM)

    def _reject_pin(self, message: str, *, shake: bool) -> None:
        self.error = message
        self._pin = ""
        self.pin_error = shake

    # -----------------------
    # Punch State Machine
    # -----------------------
    def select_action(self, action: PendingAction) -> None:
        self._require_step("select_action", KioskStep.CONFIRM)
        self._require_idle()
        action = PendingAction(action)
        if action not in available_actions(self.clock_state.status):
            raise KioskStateError(f"select_action({action.value})", self.step.value)
        self.pending_action = action
        self.error = None
        self.countdown = self._settings.countdown_seconds
        self._transition(KioskStep.COUNTDOWN)

    def cancel_countdown(self) -> None:
        """Back to confirm without sending anything; only possible before zero."""
        self._require_step("cancel_countdown", KioskStep.COUNTDOWN)
        if self.countdown <= 0:
            raise KioskStateError("cancel_countdown", self.step.value)
        self.pending_action = primary_action(self.clock_state.status)
        self.countdown = 0
        self._transition(KioskStep.CONFIRM)

    def _countdown_tick(self):
        if self.step != KioskStep.COUNTDOWN:
            return None
        self.countdown -= 1
        if self.countdown > 0:
            self._timers.start(COUNTDOWN_TIMER, 1.0, self._countdown_tick)
            return None
        self.countdown = 0
        return self._execute_action()

    async def _execute_action(self) -> None:
        action = self.pending_action
        generation = self._generation
        self.loading = True
        try:
            await self._dispatch(action)
        except BackendError as e:
            logger.warning(f"Punch {action.value} for employee {self.employee.id} failed: {e}")
            if generation == self._generation:
                self.error = MSG_ACTION_FAILED
                self.pending_action = primary_action(self.clock_state.status)
                self._transition(KioskStep.CONFIRM)
            return
        finally:
            self.loading = False

        if generation != self._generation:
            return
        logger.info(f"Punch {action.value} recorded for employee {self.employee.id}")
        self.success_message = SUCCESS_MESSAGES[action]
        self.pending_action = None
        self._transition(KioskStep.SUCCESS)

    async def _dispatch(self, action: PendingAction) -> None:
        tenant_id = self.tenant.tenant_id
        employee = self.employee
        state = self.clock_state
        if action == PendingAction.CLOCK_IN:
            await self._backend.clock_in(tenant_id, employee)
        elif action == PendingAction.CLOCK_OUT:
            await self._backend.clock_out(tenant_id, employee.id, state.active_entry_id)
        elif action == PendingAction.BREAK_START:
            await self._backend.break_start(tenant_id, employee.id, state.active_entry_id)
        elif action == PendingAction.BREAK_END:
            await self._backend.break_end(tenant_id, state.active_break_id)
        else:
            raise ValueError(f"Unknown action: {action}")

    def done(self) -> None:
        """Employee walks away from the confirm screen."""
        self._require_step("done", KioskStep.CONFIRM)
        self._require_idle()
        self._return_to_pin()

    # -----------------------
    # Idle/Session Guard
    # -----------------------
    def touch(self) -> None:
        if self.step in IDLE_GUARDED_STEPS:
            self._restart_idle_timer()

    def _restart_idle_timer(self) -> None:
        self._timers.start(IDLE_TIMER, self._settings.idle_timeout_seconds, self._on_idle_timeout)

    def _on_idle_timeout(self) -> None:
        if self.step not in IDLE_GUARDED_STEPS:
            return
        logger.info("Kiosk idle, returning to PIN entry")
        self._return_to_pin()

    # -----------------------
    # My Hours / Correction Workflow
    # -----------------------
    async def open_my_hours(self) -> None:
        self._require_step("open_my_hours", KioskStep.CONFIRM)
        self._require_idle()
        self.error = None
        self.hours_entries = []
        self._transition(KioskStep.MY_HOURS)
        await self._load_hours()

    async def _load_hours(self) -> None:
        generation = self._generation
        period = semi_monthly_period(self._today())
        self.pay_period = period
        self.loading = True
        self.loading_hours = True
        try:
            entries = await self._backend.my_hours(self.tenant.tenant_id, self.employee, period)
        except BackendError as e:
            logger.warning(f"Loading hours failed: {e}")
            if generation == self._generation:
                self.error = MSG_HOURS_FAILED
            return
        finally:
            self.loading = False
            self.loading_hours = False

        if generation != self._generation:
            logger.debug("Discarding hours of a previous session")
            return
        self.hours_entries = entries

    def back_to_confirm(self) -> None:
        self._require_step("back_to_confirm", KioskStep.MY_HOURS)
        self.error = None
        self._transition(KioskStep.CONFIRM)

    def open_edit_entry(self, entry_id: str) -> None:
        self._require_step("open_edit_entry", KioskStep.MY_HOURS)
        self._require_idle()
        entry = next((e for e in self.hours_entries if e.id == entry_id), None)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        if not entry.is_editable:
            raise EntryNotEditableError(entry_id)

        in_date, in_time = split_local(entry.clock_in, self._tz)
        out_date, out_time = split_local(entry.clock_out, self._tz)
        self.editing_entry = entry
        self.edit_draft = EditDraft(
            clock_in_date=in_date,
            clock_in_time=in_time,
            clock_out_date=out_date,
            clock_out_time=out_time,
        )
        self.error = None
        self._transition(KioskStep.EDIT_ENTRY)

    def update_edit_draft(self, update: EditDraftUpdate) -> None:
        self._require_step("update_edit_draft", KioskStep.EDIT_ENTRY)
        changes = update.model_dump(exclude_none=True)
        self.edit_draft = self.edit_draft.model_copy(update=changes)
        self.error = None
        self.touch()

    def back_to_my_hours(self) -> None:
        self._require_step("back_to_my_hours", KioskStep.EDIT_ENTRY)
        self._require_idle()
        self.editing_entry = None
        self.edit_draft = None
        self.error = None
        self._transition(KioskStep.MY_HOURS)

    async def submit_edit_request(self) -> None:
        self._require_step("submit_edit_request", KioskStep.EDIT_ENTRY)
        self._require_idle()
        draft = self.edit_draft
        if not draft.reason.strip():
            self.error = MSG_REASON_REQUIRED
            return
        try:
            request = EditRequest(
                entry_id=self.editing_entry.id,
                corrected_clock_in=combine_local(draft.clock_in_date, draft.clock_in_time, self._tz),
                corrected_clock_out=combine_local(draft.clock_out_date, draft.clock_out_time, self._tz),
                reason=draft.reason,
            )
        except ValueError:
            self.error = MSG_INVALID_DATETIME
            return

        generation = self._generation
        self.loading = True
        self.error = None
        try:
            await self._backend.edit_request(self.tenant.tenant_id, self.employee.id, request)
        except BackendError as e:
            logger.warning(f"Edit request for entry {request.entry_id} failed: {e}")
            if generation == self._generation:
                self.error = MSG_EDIT_FAILED
            return
        finally:
            self.loading = False

        if generation != self._generation:
            return
        logger.info(f"Edit request submitted for entry {request.entry_id} by employee {self.employee.id}")
        self.editing_entry = None
        self.edit_draft = None
        self._transition(KioskStep.MY_HOURS)
        await self._load_hours()

    # -----------------------
    # Display snapshot
    # -----------------------
    def _entry_view(self, entry: HoursEntry) -> HoursEntryView:
        return HoursEntryView(
            id=entry.id,
            date_label=format_entry_date(entry.clock_in, self._tz),
            clock_in_label=format_time(entry.clock_in, self._tz),
            clock_out_label=format_time(entry.clock_out, self._tz) if entry.clock_out else None,
            net_hours_label=format_hm(entry.net_hours) if entry.is_complete else None,
            break_count=len(entry.breaks),
            notes=entry.notes,
            has_pending_edit=entry.has_pending_edit,
            editable=entry.is_editable,
        )

    def snapshot(self) -> KioskView:
        view = KioskView(
            step=self.step,
            store_code=self.store_code,
            tenant=self.tenant,
            pin_length=len(self._pin),
            pin_error=self.pin_error,
            employee=self.employee,
            clock_state=self.clock_state,
            error=self.error,
            loading=self.loading,
            loading_hours=self.loading_hours,
            footer=ClockFooter(time=self.clock.time_text, date=self.clock.date_text),
        )
        if self.clock_state is not None:
            view.status_label = status_label(self.clock_state, self._tz)

        if self.step == KioskStep.CONFIRM:
            status = self.clock_state.status
            view.primary_action = action_option(primary_action(status))
            secondary = secondary_action(status)
            if secondary is not None:
                view.secondary_action = action_option(secondary)
        elif self.step == KioskStep.COUNTDOWN:
            view.primary_action = action_option(self.pending_action)
            view.countdown = self.countdown
        elif self.step == KioskStep.SUCCESS:
            view.success_message = self.success_message

        if self.step in IDLE_GUARDED_STEPS:
            if self.pay_period is not None:
                view.pay_period_start = self.pay_period.start_iso
                view.pay_period_end = self.pay_period.end_iso
                view.pay_period_label = self.pay_period.label
            view.hours_entries = [self._entry_view(e) for e in self.hours_entries]
            view.total_hours_label = format_hm(sum(e.net_hours for e in self.hours_entries))
        if self.step == KioskStep.EDIT_ENTRY:
            view.editing_entry_id = self.editing_entry.id
            view.edit_draft = self.edit_draft
        return view
