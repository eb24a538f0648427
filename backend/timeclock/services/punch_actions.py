"""
Punch action table.

Maps the backend clock status to the actions the confirm screen offers, and
holds the labels, colours and success messages of each action.
"""

from datetime import tzinfo
from typing import List, Optional

from timeclock.schemas.kiosk import ActionOption, ClockState, ClockStatus, PendingAction
from timeclock.services.pay_period import format_time

ACTION_LABELS = {
    PendingAction.CLOCK_IN: "Clock In",
    PendingAction.CLOCK_OUT: "Clock Out",
    PendingAction.BREAK_START: "Start Break",
    PendingAction.BREAK_END: "End Break",
}

ACTION_COLORS = {
    PendingAction.CLOCK_IN: "#22c55e",
    PendingAction.CLOCK_OUT: "#ef4444",
    PendingAction.BREAK_START: "#f59e0b",
    PendingAction.BREAK_END: "#22c55e",
}

SUCCESS_MESSAGES = {
    PendingAction.CLOCK_IN: "Clocked In!",
    PendingAction.CLOCK_OUT: "Clocked Out!",
    PendingAction.BREAK_START: "Break Started!",
    PendingAction.BREAK_END: "Break Ended!",
}


def primary_action(status: ClockStatus) -> PendingAction:
    if status == ClockStatus.CLOCKED_OUT:
        return PendingAction.CLOCK_IN
    if status == ClockStatus.ON_BREAK:
        return PendingAction.BREAK_END
    if status == ClockStatus.CLOCKED_IN:
        return PendingAction.CLOCK_OUT
    raise ValueError(f"Unknown clock status: {status}")


def secondary_action(status: ClockStatus) -> Optional[PendingAction]:
    """Start Break is offered only while clocked in, never while on break."""
    if status == ClockStatus.CLOCKED_IN:
        return PendingAction.BREAK_START
    return None


def available_actions(status: ClockStatus) -> List[PendingAction]:
    actions = [primary_action(status)]
    secondary = secondary_action(status)
    if secondary is not None:
        actions.append(secondary)
    return actions


def action_option(action: PendingAction) -> ActionOption:
    return ActionOption(action=action, label=ACTION_LABELS[action], color=ACTION_COLORS[action])


def status_label(state: ClockState, tz: Optional[tzinfo] = None) -> str:
    """Human-readable status, e.g. ``Clocked In since 9:03 AM``."""
    if state.status == ClockStatus.CLOCKED_IN:
        if state.clock_in_time is None:
            return "Clocked In"
        return f"Clocked In since {format_time(state.clock_in_time, tz)}"
    if state.status == ClockStatus.ON_BREAK:
        return f"On Break since {format_time(state.break_start_time, tz)}"
    return "Clocked Out"
