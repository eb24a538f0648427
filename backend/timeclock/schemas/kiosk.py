"""Kiosk schemas - Pydantic models for tenants, employees, punch state and hours."""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============== Enums ==============

class KioskStep(str, Enum):
    STORE_CODE = "store_code"
    PIN_ENTRY = "pin_entry"
    CONFIRM = "confirm"
    COUNTDOWN = "countdown"
    SUCCESS = "success"
    MY_HOURS = "my_hours"
    EDIT_ENTRY = "edit_entry"


class ClockStatus(str, Enum):
    CLOCKED_OUT = "clocked_out"
    CLOCKED_IN = "clocked_in"
    ON_BREAK = "on_break"


class PendingAction(str, Enum):
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


class EmployeeSource(str, Enum):
    """The two identity pools sharing the PIN mechanism."""
    USER_PROFILE = "user_profile"
    TIP_EMPLOYEE = "tip_employee"


# ============== Tenant ==============

class TenantContext(BaseModel):
    """Store resolved from the operator-entered code."""
    tenant_id: str = Field(..., validation_alias="tenantId")
    tenant_name: str = Field(..., validation_alias="tenantName")
    logo_url: Optional[str] = Field(default=None, validation_alias="logoUrl")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ============== Employee Identity ==============

class _EmployeeBase(BaseModel):
    id: str
    full_name: str = Field(..., validation_alias="fullName")
    avatar_url: Optional[str] = Field(default=None, validation_alias="avatarUrl")
    role: str = ""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class StaffEmployee(_EmployeeBase):
    """Named staff account."""
    source: Literal["user_profile"] = "user_profile"


class TipRosterEmployee(_EmployeeBase):
    """Lightweight tip-roster employee without a login."""
    source: Literal["tip_employee"] = "tip_employee"


EmployeeIdentity = Annotated[
    Union[StaffEmployee, TipRosterEmployee],
    Field(discriminator="source"),
]


# ============== Clock State ==============

class ClockState(BaseModel):
    """Authoritative punch status as returned by the backend on PIN submit."""
    status: ClockStatus
    active_entry_id: Optional[str] = Field(default=None, validation_alias="activeEntryId")
    clock_in_time: Optional[datetime] = Field(default=None, validation_alias="clockInTime")
    active_break_id: Optional[str] = Field(default=None, validation_alias="activeBreakId")
    break_start_time: Optional[datetime] = Field(default=None, validation_alias="breakStartTime")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def check_status_fields(self) -> "ClockState":
        clocked_out = self.status == ClockStatus.CLOCKED_OUT
        if clocked_out == (self.active_entry_id is not None):
            raise ValueError("activeEntryId must be set exactly when not clocked out")
        on_break = self.status == ClockStatus.ON_BREAK
        if on_break != (self.active_break_id is not None):
            raise ValueError("activeBreakId must be set exactly when on break")
        if on_break != (self.break_start_time is not None):
            raise ValueError("breakStartTime must be set exactly when on break")
        return self


class PunchResult(ClockState):
    """Successful PIN submission: who the employee is and where they stand."""
    employee: EmployeeIdentity


# ============== Hours ==============

class HoursBreak(BaseModel):
    id: str
    break_start: datetime
    break_end: Optional[datetime] = None

    @property
    def completed_hours(self) -> float:
        """Duration in hours, zero while the break is still open."""
        if self.break_end is None:
            return 0.0
        return (self.break_end - self.break_start).total_seconds() / 3600


class HoursEntry(BaseModel):
    """One punch entry of the pay period. Read-only on the kiosk."""
    id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    notes: Optional[str] = None
    breaks: List[HoursBreak] = Field(default_factory=list)
    has_pending_edit: bool = False

    @property
    def is_complete(self) -> bool:
        return self.clock_out is not None

    @property
    def is_editable(self) -> bool:
        """At most one outstanding correction per entry, and only for completed entries."""
        return self.is_complete and not self.has_pending_edit

    @property
    def net_hours(self) -> float:
        """Worked hours minus completed breaks; open entries have none."""
        if self.clock_out is None:
            return 0.0
        total = (self.clock_out - self.clock_in).total_seconds() / 3600
        break_hours = sum(b.completed_hours for b in self.breaks)
        return max(0.0, total - break_hours)


class EditRequest(BaseModel):
    """Correction request for a completed entry. Outbound only."""
    entry_id: str
    corrected_clock_in: Optional[datetime] = None
    corrected_clock_out: Optional[datetime] = None
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A reason is required")
        return v


# ============== Display Snapshot ==============

class ActionOption(BaseModel):
    action: PendingAction
    label: str
    color: str


class HoursEntryView(BaseModel):
    id: str
    date_label: str
    clock_in_label: str
    clock_out_label: Optional[str] = None
    net_hours_label: Optional[str] = None
    break_count: int = 0
    notes: Optional[str] = None
    has_pending_edit: bool = False
    editable: bool = False


class EditDraft(BaseModel):
    """Editable fields of the correction form, as local date/time strings."""
    clock_in_date: str = ""
    clock_in_time: str = ""
    clock_out_date: str = ""
    clock_out_time: str = ""
    reason: str = ""


class EditDraftUpdate(BaseModel):
    """Partial update of the correction form."""
    clock_in_date: Optional[str] = Field(default=None, pattern="^(\\d{4}-\\d{2}-\\d{2})?$")
    clock_in_time: Optional[str] = Field(default=None, pattern="^(\\d{2}:\\d{2})?$")
    clock_out_date: Optional[str] = Field(default=None, pattern="^(\\d{4}-\\d{2}-\\d{2})?$")
    clock_out_time: Optional[str] = Field(default=None, pattern="^(\\d{2}:\\d{2})?$")
    reason: Optional[str] = Field(default=None, max_length=500)


class ClockFooter(BaseModel):
    time: str
    date: str


class KioskView(BaseModel):
    """Everything the touchscreen needs to render the current step."""
    step: KioskStep
    store_code: str = ""
    tenant: Optional[TenantContext] = None
    pin_length: int = 0
    pin_error: bool = False
    employee: Optional[EmployeeIdentity] = None
    clock_state: Optional[ClockState] = None
    status_label: Optional[str] = None
    primary_action: Optional[ActionOption] = None
    secondary_action: Optional[ActionOption] = None
    countdown: Optional[int] = None
    success_message: Optional[str] = None
    error: Optional[str] = None
    loading: bool = False
    loading_hours: bool = False
    pay_period_start: Optional[str] = None
    pay_period_end: Optional[str] = None
    pay_period_label: Optional[str] = None
    hours_entries: List[HoursEntryView] = Field(default_factory=list)
    total_hours_label: Optional[str] = None
    editing_entry_id: Optional[str] = None
    edit_draft: Optional[EditDraft] = None
    footer: Optional[ClockFooter] = None


class StoreCodeInput(BaseModel):
    code: str = Field(default="", max_length=32)


class VisibilityInput(BaseModel):
    visible: bool
