"""
Pay period and time formatting helpers for the kiosk.

The kiosk uses a semi-monthly pay period: the 1st through the 15th, or the
16th through the last day of the month. All date and time fields shown on
the screen are in the kiosk's local zone; timestamps sent to the backend are
UTC.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Tuple


@dataclass(frozen=True)
class PayPeriod:
    start: date
    end: date

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    @property
    def label(self) -> str:
        return f"{self.start:%m/%d} - {self.end:%m/%d}"


def semi_monthly_period(today: date) -> PayPeriod:
    """Pay period containing ``today``."""
    if today.day <= 15:
        return PayPeriod(today.replace(day=1), today.replace(day=15))
    last_day = calendar.monthrange(today.year, today.month)[1]
    return PayPeriod(today.replace(day=16), today.replace(day=last_day))


# ============== Local time ==============

def local_now(tz: Optional[tzinfo] = None) -> datetime:
    """Aware current time in ``tz`` (host zone when None)."""
    if tz is not None:
        return datetime.now(tz)
    return datetime.now().astimezone()


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert a backend timestamp to kiosk-local time. Naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def split_local(value: datetime, tz: Optional[tzinfo] = None) -> Tuple[str, str]:
    """Split a timestamp into local ``YYYY-MM-DD`` and ``HH:MM`` fields."""
    local = to_local(value, tz)
    return local.strftime("%Y-%m-%d"), local.strftime("%H:%M")


def combine_local(date_part: str, time_part: str, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Rebuild a UTC timestamp from local date and time fields.

    Returns None when either field is blank.
    """
    date_part = (date_part or "").strip()
    time_part = (time_part or "").strip()
    if not date_part or not time_part:
        return None
    naive = datetime.strptime(f"{date_part}T{time_part}", "%Y-%m-%dT%H:%M")
    local = naive.replace(tzinfo=tz) if tz is not None else naive.astimezone()
    return local.astimezone(timezone.utc)


# ============== Formatting ==============

def _hour12(value: datetime) -> Tuple[int, str]:
    hour = value.hour % 12 or 12
    return hour, "AM" if value.hour < 12 else "PM"


def format_time(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """``9:03 AM``"""
    local = to_local(value, tz)
    hour, meridiem = _hour12(local)
    return f"{hour}:{local.minute:02d} {meridiem}"


def format_entry_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """``Sun, Oct 18``"""
    local = to_local(value, tz)
    return f"{local:%a, %b} {local.day}"


def format_clock_time(value: datetime) -> str:
    """Footer clock, ``9:03:12 AM``."""
    hour, meridiem = _hour12(value)
    return f"{hour}:{value.minute:02d}:{value.second:02d} {meridiem}"


def format_clock_date(value: datetime) -> str:
    """Footer date, ``Sunday, October 18``."""
    return f"{value:%A, %B} {value.day}"


def format_hm(hours: float) -> str:
    """Hours as ``H:MM``."""
    if hours <= 0:
        return "0:00"
    total_minutes = int(round(hours * 60))
    hrs, mins = divmod(total_minutes, 60)
    return f"{hrs}:{mins:02d}"
