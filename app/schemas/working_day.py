from typing import Optional, List
from pydantic import BaseModel, Field, UUID4
from datetime import date, datetime


# Working day - Create/Update (POST /admin/working-days, each item of the bulk PUT)
class WorkingDayUpsert(BaseModel):
    day_of_week: int = Field(ge=0, le=6)     # 0 = Sunday ... 6 = Saturday
    is_working: bool = False
    start_time: Optional[str] = None         # "HH:MM", 24h
    end_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None


class WorkingDayBulkUpdate(BaseModel):
    working_days: List[WorkingDayUpsert]


# Working day - DB response
class WorkingDay(BaseModel):
    id: Optional[UUID4] = None               # None for days that were never configured
    day_of_week: int
    day_name: str
    is_working: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    is_active: bool = False
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# GET /working-days/check/{date}
class WorkingDayCheck(BaseModel):
    date: date
    day_name: str
    is_working_day: bool


class SlotPreview(BaseModel):
    start_time: str
    end_time: str


# GET /working-days/slots/{date}
class WorkingDaySlotsPreview(BaseModel):
    date: date
    day_name: str
    is_working_day: bool
    slot_duration_minutes: int
    slots: List[SlotPreview]


class WorkingDayStatistics(BaseModel):
    total_days: int
    working_days: int
    non_working_days: int
    weekly_working_minutes: int
    working_days_list: List[WorkingDay]
