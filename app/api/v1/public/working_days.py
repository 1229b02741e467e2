from typing import List
from datetime import date

from fastapi import APIRouter, Depends

from app.api.deps import get_calendar
from app.core.config import settings
from app.models.working_day import DAY_NAMES
from app.services.working_days import WorkingDayCalendar
from app.utils.timeslots import sunday_based_weekday
from app.schemas.working_day import (
    SlotPreview,
    WorkingDay as WorkingDaySchema,
    WorkingDayCheck,
    WorkingDaySlotsPreview,
)

router = APIRouter(prefix="/working-days", tags=["Working Days"])


@router.get("", response_model=List[WorkingDaySchema])
def list_working_days(calendar: WorkingDayCalendar = Depends(get_calendar)):
    """All seven days, Sunday first. Unconfigured days are reported as non-working."""
    return calendar.get_all()


@router.get("/check/{check_date}", response_model=WorkingDayCheck)
def check_working_day(check_date: date, calendar: WorkingDayCalendar = Depends(get_calendar)):
    return WorkingDayCheck(
        date=check_date,
        day_name=DAY_NAMES[sunday_based_weekday(check_date)],
        is_working_day=calendar.is_working_date(check_date),
    )


@router.get("/slots/{slot_date}", response_model=WorkingDaySlotsPreview)
def preview_slots(slot_date: date, calendar: WorkingDayCalendar = Depends(get_calendar)):
    """Slot boundaries the date would get from its working hours."""
    working_day, specs = calendar.candidate_slots_for_date(slot_date, settings.DEFAULT_SLOT_DURATION)
    return WorkingDaySlotsPreview(
        date=slot_date,
        day_name=DAY_NAMES[sunday_based_weekday(slot_date)],
        is_working_day=bool(working_day and working_day.is_working),
        slot_duration_minutes=settings.DEFAULT_SLOT_DURATION,
        slots=[SlotPreview(start_time=s.start_time, end_time=s.end_time) for s in specs],
    )
