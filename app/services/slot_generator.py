from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from app.utils.timeslots import ClockTime, format_minutes, intervals_overlap


@dataclass
class SlotSpec:
    """An unsaved time slot, ready to be stored in a DailySlotSet."""
    start_time: str
    end_time: str
    max_bookings: int
    current_bookings: int = 0
    is_available: bool = True
    notes: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def generate_slots(
    working_day,
    slot_duration_minutes: int,
    max_bookings_per_slot: int,
    notes: Optional[str] = None,
) -> List[SlotSpec]:
    """
    Split a working day into back-to-back slots of ``slot_duration_minutes``.

    ``working_day`` needs ``is_working``, ``start_time``, ``end_time`` and
    optional ``break_start`` / ``break_end`` ("HH:MM"). A candidate slot that
    would overlap the break window is not shortened: the cursor jumps to the
    end of the break and tries again. Capacity between the last full slot
    and the break is dropped.
    """
    if slot_duration_minutes < 1:
        raise ValueError("slot_duration_minutes must be at least 1")
    if max_bookings_per_slot < 1:
        raise ValueError("max_bookings_per_slot must be at least 1")
    if not working_day.is_working or not working_day.start_time or not working_day.end_time:
        return []

    start = ClockTime.parse(working_day.start_time).to_minutes()
    end = ClockTime.parse(working_day.end_time).to_minutes()

    break_start = break_end = None
    if working_day.break_start and working_day.break_end:
        break_start = ClockTime.parse(working_day.break_start).to_minutes()
        break_end = ClockTime.parse(working_day.break_end).to_minutes()

    slots: List[SlotSpec] = []
    cursor = start
    while cursor + slot_duration_minutes <= end:
        slot_end = cursor + slot_duration_minutes
        if break_start is not None and intervals_overlap(cursor, slot_end, break_start, break_end):
            cursor = break_end
            continue

        slots.append(
            SlotSpec(
                start_time=format_minutes(cursor),
                end_time=format_minutes(slot_end),
                max_bookings=max_bookings_per_slot,
                notes=notes,
            )
        )
        cursor = slot_end

    return slots
