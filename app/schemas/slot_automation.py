from typing import Optional, List
from pydantic import BaseModel
from datetime import date


# POST /admin/slot-automation/bulk-generate
class BulkGenerateRequest(BaseModel):
    start_date: date
    end_date: date


class DateOutcome(BaseModel):
    date: date
    status: str                  # "generated" | "skipped" | "error"
    reason: str = ""
    slots: int = 0

    class Config:
        from_attributes = True


class GenerationRange(BaseModel):
    start: date
    end: date


class GenerationSummary(BaseModel):
    generated: int
    skipped: int
    errors: int
    total: int
    date_range: GenerationRange
    duration_ms: int
    details: List[DateOutcome]


class GenerationStatusEntry(BaseModel):
    date: date
    day_name: str
    is_working_day: bool
    has_slots: bool
    slot_count: int


class WorkingDayOverview(BaseModel):
    day_of_week: int
    day_name: str
    is_working: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None


class AutomationSummary(BaseModel):
    working_days: List[WorkingDayOverview]
    working_day_count: int
    upcoming_dates_with_slots: int
    upcoming_auto_generated: int
    window_days: int
    slot_duration_minutes: int
    max_bookings_per_slot: int
