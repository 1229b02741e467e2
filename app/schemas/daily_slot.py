from typing import Optional, List
from pydantic import BaseModel, Field, UUID4
from datetime import date, datetime


# Slot - one entry of a create/update payload, or POST /{date}/slots
class SlotInput(BaseModel):
    start_time: str                          # "HH:MM", 24h
    end_time: str
    max_bookings: Optional[int] = None       # defaults to 10
    is_available: bool = True
    notes: Optional[str] = Field(default=None, max_length=200)


# POST /admin/daily-slots
class DailySlotsCreate(BaseModel):
    date: date
    slots: List[SlotInput]
    notes: Optional[str] = Field(default=None, max_length=500)


# PUT /admin/daily-slots/{date}
class DailySlotsUpdate(BaseModel):
    slots: List[SlotInput]


# Slot - DB response
class TimeSlot(BaseModel):
    id: UUID4
    start_time: str
    end_time: str
    max_bookings: int
    current_bookings: int = 0
    remaining: int
    is_available: bool = True
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# Slot set - DB response
class DailySlotSet(BaseModel):
    id: UUID4
    date: date
    created_by: str
    is_active: bool = True
    notes: Optional[str] = None
    total_slots: int
    available_slots_count: int
    slots: List[TimeSlot]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# GET /slots/{date}/available
class AvailableSlotsResponse(BaseModel):
    date: date
    total_slots: int
    available_slots: List[TimeSlot]


class DeleteSlotsResponse(BaseModel):
    date: date
    deleted_slots: int


class SlotStatistics(BaseModel):
    total_days_with_slots: int
    total_slots: int
    total_capacity: int
    available_capacity: int
    booked_slots: int
    utilization_rate: str
