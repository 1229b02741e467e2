from typing import List, Optional
from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_automation_job, get_current_admin_user
from app.core.errors import raise_for_result
from app.models.user import User
from app.services.slot_automation import SchedulingAutomationJob
from app.schemas.daily_slot import DailySlotSet as DailySlotSetSchema
from app.schemas.slot_automation import (
    AutomationSummary,
    BulkGenerateRequest,
    GenerationStatusEntry,
    GenerationSummary,
)

router = APIRouter(prefix="/admin/slot-automation", tags=["Admin - Slot Automation"])


@router.get("/summary", response_model=AutomationSummary)
def automation_summary(
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    """Working-day configuration plus how many upcoming dates already have slots."""
    return job.summary()


@router.get("/status", response_model=List[GenerationStatusEntry])
def generation_status(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    """Per-date view of which days are working days and which have slots. Defaults to the generation window."""
    start = start_date or job.today()
    end = end_date or start + timedelta(days=job.days_ahead)
    return raise_for_result(job.generation_status(start, end))


@router.post("/bulk-generate", response_model=GenerationSummary)
def bulk_generate(
    body: BulkGenerateRequest,
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    summary = raise_for_result(job.generate_range(body.start_date, body.end_date))
    return summary.as_dict()


@router.get("/generate-next", response_model=GenerationSummary)
def generate_next_days(
    days: int = Query(30),
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    summary = raise_for_result(job.generate_next_days(days))
    return summary.as_dict()


@router.post("/generate/{slot_date}", response_model=DailySlotSetSchema, status_code=status.HTTP_201_CREATED)
def generate_for_date(
    slot_date: date,
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    """Generate one date from its working-day hours. 409 if it already has slots."""
    return raise_for_result(job.generate_for_date(slot_date))


@router.post("/run-daily", response_model=GenerationSummary)
def run_daily(
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    return job.run_daily().as_dict()


@router.post("/run-weekly", response_model=GenerationSummary)
def run_weekly(
    job: SchedulingAutomationJob = Depends(get_automation_job),
    current_user: User = Depends(get_current_admin_user),
):
    return job.run_weekly().as_dict()
