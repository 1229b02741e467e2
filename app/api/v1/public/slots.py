from datetime import date

from fastapi import APIRouter, Depends

from app.api.deps import get_slot_store
from app.core.errors import raise_for_result
from app.services.daily_slots import DailySlotStore
from app.schemas.daily_slot import AvailableSlotsResponse, TimeSlot as TimeSlotSchema

router = APIRouter(prefix="/slots", tags=["Slots"])


@router.get("/{slot_date}/available", response_model=AvailableSlotsResponse)
def get_available_slots(slot_date: date, store: DailySlotStore = Depends(get_slot_store)):
    """Slots on a date that are open and still have capacity."""
    result = store.get_available(slot_date)
    slots = raise_for_result(result)
    return AvailableSlotsResponse(
        date=slot_date,
        total_slots=result.details.get("total_slots", len(slots)),
        available_slots=[TimeSlotSchema.model_validate(s) for s in slots],
    )
