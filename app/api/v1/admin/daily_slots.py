from uuid import UUID
from typing import List
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_admin_user, get_slot_store
from app.core.errors import raise_for_result
from app.models.user import User
from app.services.daily_slots import DailySlotStore
from app.schemas.daily_slot import (
    DailySlotsCreate,
    DailySlotsUpdate,
    DailySlotSet as DailySlotSetSchema,
    DeleteSlotsResponse,
    SlotInput,
    SlotStatistics,
    TimeSlot as TimeSlotSchema,
)

router = APIRouter(prefix="/admin/daily-slots", tags=["Admin - Daily Slots"])


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/statistics", response_model=SlotStatistics)
def slot_statistics(
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    return store.statistics()


@router.get("", response_model=List[DailySlotSetSchema])
def list_slots_in_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    """All slot sets between two dates, inclusive."""
    return raise_for_result(store.get_for_range(start_date, end_date))


@router.get("/{slot_date}", response_model=DailySlotSetSchema)
def get_slots_for_date(
    slot_date: date,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(store.get_for_date(slot_date))


# ---------------------------------------------------------------------------
# Set-level writes
# ---------------------------------------------------------------------------


@router.post("", response_model=DailySlotSetSchema, status_code=status.HTTP_201_CREATED)
def create_slots(
    body: DailySlotsCreate,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    """Create the slot set for a date. 409 if the date already has one."""
    return raise_for_result(
        store.create_for_date(body.date, body.slots, actor=str(current_user.id), notes=body.notes)
    )


@router.put("/{slot_date}", response_model=DailySlotSetSchema)
def replace_slots(
    slot_date: date,
    body: DailySlotsUpdate,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    """Replace every slot of a date. Refused while any slot has bookings."""
    return raise_for_result(store.update_for_date(slot_date, body.slots, actor=str(current_user.id)))


@router.delete("/{slot_date}", response_model=DeleteSlotsResponse)
def delete_slots(
    slot_date: date,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    deleted = raise_for_result(store.delete_for_date(slot_date))
    return DeleteSlotsResponse(date=slot_date, deleted_slots=deleted)


# ---------------------------------------------------------------------------
# Slot-level writes
# ---------------------------------------------------------------------------


@router.post("/{slot_date}/slots", response_model=DailySlotSetSchema, status_code=status.HTTP_201_CREATED)
def add_slot(
    slot_date: date,
    body: SlotInput,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(store.add_slot(slot_date, body))


@router.delete("/{slot_date}/slots/{slot_id}", response_model=DailySlotSetSchema)
def remove_slot(
    slot_date: date,
    slot_id: UUID,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(store.remove_slot(slot_date, slot_id))


@router.post("/{slot_date}/slots/{slot_id}/book", response_model=TimeSlotSchema)
def book_slot(
    slot_date: date,
    slot_id: UUID,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    """Take one unit of capacity. 409 when the slot is full."""
    return raise_for_result(store.book(slot_date, slot_id))


@router.post("/{slot_date}/slots/{slot_id}/release", response_model=TimeSlotSchema)
def release_slot(
    slot_date: date,
    slot_id: UUID,
    store: DailySlotStore = Depends(get_slot_store),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(store.release(slot_date, slot_id))
