"""Pydantic schemas."""

from timeclock.schemas.kiosk import (
    ClockState,
    ClockStatus,
    EditDraft,
    EditDraftUpdate,
    EditRequest,
    EmployeeIdentity,
    HoursEntry,
    KioskStep,
    KioskView,
    PendingAction,
    PunchResult,
    StaffEmployee,
    TenantContext,
    TipRosterEmployee,
)
