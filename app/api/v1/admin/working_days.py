from typing import List

from fastapi import APIRouter, Depends, Path, Response, status

from app.api.deps import get_calendar, get_current_admin_user
from app.core.errors import raise_for_result
from app.models.user import User
from app.services.working_days import WorkingDayCalendar
from app.schemas.working_day import (
    WorkingDay as WorkingDaySchema,
    WorkingDayBulkUpdate,
    WorkingDayStatistics,
    WorkingDayUpsert,
)

router = APIRouter(prefix="/admin/working-days", tags=["Admin - Working Days"])


@router.get("/statistics", response_model=WorkingDayStatistics)
def working_day_statistics(
    calendar: WorkingDayCalendar = Depends(get_calendar),
    current_user: User = Depends(get_current_admin_user),
):
    return calendar.statistics()


@router.post("", response_model=WorkingDaySchema)
def upsert_working_day(
    body: WorkingDayUpsert,
    response: Response,
    calendar: WorkingDayCalendar = Depends(get_calendar),
    current_user: User = Depends(get_current_admin_user),
):
    """Create or update one day. 201 when the day had no configuration yet."""
    result = calendar.create_or_update(body.model_dump(), actor=str(current_user.id))
    working_day = raise_for_result(result)
    if result.details.get("created"):
        response.status_code = status.HTTP_201_CREATED
    return working_day


@router.put("/bulk", response_model=List[WorkingDaySchema])
def bulk_update_working_days(
    body: WorkingDayBulkUpdate,
    calendar: WorkingDayCalendar = Depends(get_calendar),
    current_user: User = Depends(get_current_admin_user),
):
    """Apply several days at once; nothing is saved if any entry is invalid."""
    entries = [entry.model_dump() for entry in body.working_days]
    return raise_for_result(calendar.bulk_update(entries, actor=str(current_user.id)))


@router.delete("/{day_of_week}", response_model=WorkingDaySchema)
def delete_working_day(
    day_of_week: int = Path(ge=0, le=6),
    calendar: WorkingDayCalendar = Depends(get_calendar),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(calendar.soft_delete(day_of_week, actor=str(current_user.id)))
