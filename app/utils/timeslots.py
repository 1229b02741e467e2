"""
Naive clock-time helpers.

Two string grammars coexist and are never mixed:
  - admin slot times / working hours: 24h ``"HH:MM"`` (``ClockTime``)
  - customer booking labels: 12h ``"HH:MM AM/PM"``, optionally a range
    such as ``"10:00 AM - 10:45 AM"`` (``combine_date_and_slot``)

Neither is timezone-aware; both are local wall-clock values.
"""
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union

HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
SLOT_LABEL_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{1,2}))?\s+(AM|PM)\b", re.IGNORECASE)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class ClockTime:
    hour: int
    minute: int

    def __post_init__(self):
        if not (0 <= self.hour <= 23 and 0 <= self.minute <= 59):
            raise ValueError(f"Invalid clock time {self.hour}:{self.minute}")

    @classmethod
    def parse(cls, value: str) -> "ClockTime":
        match = HHMM_PATTERN.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise ValueError(f"Time must be in HH:MM format, got {value!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_minutes(cls, minutes: int) -> "ClockTime":
        if not 0 <= minutes < MINUTES_PER_DAY:
            raise ValueError(f"{minutes} minutes is outside a single day")
        return cls(minutes // 60, minutes % 60)

    def to_minutes(self) -> int:
        return self.hour * 60 + self.minute

    def compare(self, other: "ClockTime") -> int:
        """-1, 0 or 1, ordering by minutes since midnight."""
        a, b = self.to_minutes(), other.to_minutes()
        return (a > b) - (a < b)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def is_valid_hhmm(value: Optional[str]) -> bool:
    return isinstance(value, str) and HHMM_PATTERN.match(value.strip()) is not None


def to_minutes(value: str) -> int:
    return ClockTime.parse(value).to_minutes()


def format_minutes(minutes: int) -> str:
    return str(ClockTime.from_minutes(minutes))


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open [start, end) intersection test."""
    return start_a < end_b and end_a > start_b


def sunday_based_weekday(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def normalize_date(value: Union[date, datetime]) -> date:
    """Collapse a datetime to its calendar day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def combine_date_and_slot(day: Optional[Union[date, datetime]], slot: Optional[str]) -> Optional[datetime]:
    """
    Combine a calendar date with a 12h slot label into one naive datetime.

    Falls back to midnight of ``day`` when the label is missing or carries no
    AM/PM period, mirroring how stored labels have always been read.
    """
    if day is None:
        return None
    base = datetime.combine(normalize_date(day), time.min)

    if not slot or not isinstance(slot, str):
        return base

    match = SLOT_LABEL_PATTERN.match(slot)
    if not match:
        return base

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    period = match.group(3).upper()
    if period == "PM" and hours != 12:
        hours += 12
    if period == "AM" and hours == 12:
        hours = 0

    try:
        return base.replace(hour=hours, minute=minutes)
    except ValueError:
        return base


def hours_until_booking(day, slot, now: datetime) -> float:
    booking_at = combine_date_and_slot(day, slot)
    if booking_at is None:
        return -math.inf
    return (booking_at - now).total_seconds() / 3600
