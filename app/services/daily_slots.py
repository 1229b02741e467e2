"""
Per-date slot sets and their booking counters.

Every counter change is one conditional UPDATE on a single row
(``current_bookings < max_bookings`` for booking, ``> 0`` for release), so
concurrent requests can never push a slot past its capacity. A failed
update is then classified by re-reading the row.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ErrorKind, ServiceResult
from app.models.daily_slot import DailySlotSet, TimeSlot
from app.services.slot_generator import SlotSpec
from app.utils.timeslots import ClockTime, intervals_overlap, is_valid_hhmm, normalize_date

logger = logging.getLogger(__name__)

DEFAULT_MAX_BOOKINGS = 10
MAX_BOOKINGS_LIMIT = 100

DateLike = Union[date, datetime]


def _slot_fields(item: Any) -> Dict[str, Any]:
    if isinstance(item, SlotSpec):
        return item.as_dict()
    if hasattr(item, "model_dump"):
        return item.model_dump(exclude_none=True)
    return dict(item)


def _validate_slot(data: Dict[str, Any], position: int) -> Optional[ServiceResult]:
    label = f"Slot {position}"
    start, end = data.get("start_time"), data.get("end_time")
    if not start or not end:
        return ServiceResult.fail(
            ErrorKind.VALIDATION, "MISSING_TIMES", f"{label}: start_time and end_time are required"
        )
    if not is_valid_hhmm(start) or not is_valid_hhmm(end):
        return ServiceResult.fail(
            ErrorKind.VALIDATION, "INVALID_TIME_FORMAT", f"{label}: times must be in HH:MM format"
        )
    if ClockTime.parse(end).compare(ClockTime.parse(start)) <= 0:
        return ServiceResult.fail(
            ErrorKind.VALIDATION, "INVALID_SLOT_RANGE", f"{label} {start}-{end}: End time must be after start time"
        )
    max_bookings = data.get("max_bookings")
    if max_bookings is not None and not 1 <= max_bookings <= MAX_BOOKINGS_LIMIT:
        return ServiceResult.fail(
            ErrorKind.VALIDATION,
            "INVALID_CAPACITY",
            f"{label}: max_bookings must be between 1 and {MAX_BOOKINGS_LIMIT}",
        )
    return None


def _build_slot(data: Dict[str, Any]) -> TimeSlot:
    return TimeSlot(
        start_time=str(ClockTime.parse(data["start_time"])),
        end_time=str(ClockTime.parse(data["end_time"])),
        max_bookings=data.get("max_bookings") or DEFAULT_MAX_BOOKINGS,
        current_bookings=0,
        is_available=data.get("is_available", True),
        notes=data.get("notes"),
    )


def _find_overlap(start: str, end: str, slots: Iterable) -> Optional[Any]:
    new_start, new_end = ClockTime.parse(start).to_minutes(), ClockTime.parse(end).to_minutes()
    for existing in slots:
        if intervals_overlap(
            new_start,
            new_end,
            ClockTime.parse(existing.start_time).to_minutes(),
            ClockTime.parse(existing.end_time).to_minutes(),
        ):
            return existing
    return None


def _slots_with_bookings(slot_set: DailySlotSet) -> List[Dict[str, Any]]:
    return [
        {"time": f"{s.start_time}-{s.end_time}", "current_bookings": s.current_bookings}
        for s in slot_set.slots
        if s.current_bookings > 0
    ]


class DailySlotStore:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_date(self, day: DateLike) -> Optional[DailySlotSet]:
        return (
            self.db.query(DailySlotSet)
            .filter(DailySlotSet.date == normalize_date(day), DailySlotSet.is_active == True)
            .first()
        )

    def exists_for_date(self, day: DateLike) -> bool:
        return (
            self.db.query(DailySlotSet.id)
            .filter(DailySlotSet.date == normalize_date(day))
            .first()
            is not None
        )

    def get_for_date(self, day: DateLike) -> ServiceResult[DailySlotSet]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date")
        return ServiceResult.ok(slot_set)

    def get_available(self, day: DateLike) -> ServiceResult[List[TimeSlot]]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots available for this date")
        return ServiceResult.ok(
            [s for s in slot_set.slots if s.has_capacity],
            total_slots=slot_set.total_slots,
        )

    def get_for_range(self, start: DateLike, end: DateLike) -> ServiceResult[List[DailySlotSet]]:
        start, end = normalize_date(start), normalize_date(end)
        if start > end:
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_RANGE", "start_date must be before end_date")
        slot_sets = (
            self.db.query(DailySlotSet)
            .filter(
                DailySlotSet.date >= start,
                DailySlotSet.date <= end,
                DailySlotSet.is_active == True,
            )
            .order_by(DailySlotSet.date)
            .all()
        )
        return ServiceResult.ok(slot_sets)

    # ------------------------------------------------------------------
    # Set-level writes
    # ------------------------------------------------------------------

    def _validate_payload(self, slots: List[Dict[str, Any]]) -> Optional[ServiceResult]:
        if not slots:
            return ServiceResult.fail(ErrorKind.VALIDATION, "EMPTY_SLOTS", "Slots must be a non-empty array")
        for position, data in enumerate(slots, start=1):
            error = _validate_slot(data, position)
            if error:
                return error
        ordered = sorted(slots, key=lambda s: ClockTime.parse(s["start_time"]))
        for previous, current in zip(ordered, ordered[1:]):
            if ClockTime.parse(current["start_time"]) < ClockTime.parse(previous["end_time"]):
                return ServiceResult.fail(
                    ErrorKind.VALIDATION,
                    "OVERLAPPING_SLOTS",
                    f"Slot {current['start_time']}-{current['end_time']} overlaps "
                    f"{previous['start_time']}-{previous['end_time']}",
                )
        return None

    def _delete_unbooked(self, slot_set: DailySlotSet, slot_id: Optional[UUID] = None) -> bool:
        """
        Delete the set's slots (or just ``slot_id``) in one statement that
        skips rows with bookings. When a booking landed after the caller's
        check the counts differ, and the transaction is rolled back.
        """
        query = self.db.query(TimeSlot).filter(
            TimeSlot.slot_set_id == slot_set.id,
            TimeSlot.current_bookings == 0,
        )
        day, expected = slot_set.date, slot_set.total_slots
        if slot_id is not None:
            query = query.filter(TimeSlot.id == slot_id)
            expected = 1
        deleted = query.delete(synchronize_session=False)
        if deleted != expected:
            self.db.rollback()
            logger.warning(
                "Slot delete on %s raced a booking (%d of %d rows free)", day, deleted, expected
            )
            return False
        self.db.expire(slot_set, ["slots"])
        return True

    def _booked_meanwhile(self, day: DateLike, action: str) -> ServiceResult:
        slot_set = self.find_by_date(day)
        return ServiceResult.fail(
            ErrorKind.STATE_ILLEGAL,
            "HAS_BOOKINGS",
            f"Cannot {action} slots that have existing bookings",
            slots_with_bookings=_slots_with_bookings(slot_set) if slot_set else [],
        )

    def create_for_date(
        self,
        day: DateLike,
        slots: Iterable[Any],
        actor: str,
        notes: Optional[str] = None,
    ) -> ServiceResult[DailySlotSet]:
        day = normalize_date(day)
        payload = [_slot_fields(s) for s in slots]
        error = self._validate_payload(payload)
        if error:
            return error

        if self.exists_for_date(day):
            return ServiceResult.fail(
                ErrorKind.CONFLICT,
                "DUPLICATE_DATE",
                "Slots already exist for this date. Use update endpoint to modify them.",
                date=day.isoformat(),
            )

        slot_set = DailySlotSet(
            date=day,
            created_by=str(actor),
            notes=notes,
            slots=[_build_slot(data) for data in payload],
        )
        self.db.add(slot_set)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer created the same date between the check and the insert
            self.db.rollback()
            return ServiceResult.fail(
                ErrorKind.CONFLICT,
                "DUPLICATE_DATE",
                "Slots already exist for this date. Use update endpoint to modify them.",
                date=day.isoformat(),
            )
        self.db.refresh(slot_set)

        logger.info("Created %d slots for %s (by %s)", slot_set.total_slots, day, actor)
        return ServiceResult.ok(slot_set, message="Slots created successfully for the date")

    def update_for_date(self, day: DateLike, slots: Iterable[Any], actor: str) -> ServiceResult[DailySlotSet]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date")

        booked = _slots_with_bookings(slot_set)
        if booked:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "HAS_BOOKINGS",
                "Cannot update slots that have existing bookings",
                slots_with_bookings=booked,
            )

        payload = [_slot_fields(s) for s in slots]
        error = self._validate_payload(payload)
        if error:
            return error

        if not self._delete_unbooked(slot_set):
            return self._booked_meanwhile(day, "update")
        slot_set.slots = [_build_slot(data) for data in payload]
        self.db.commit()
        self.db.refresh(slot_set)

        logger.info("Replaced slots for %s with %d slots (by %s)", slot_set.date, slot_set.total_slots, actor)
        return ServiceResult.ok(slot_set, message="Slots updated successfully for the date")

    def delete_for_date(self, day: DateLike) -> ServiceResult[int]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date")

        booked = _slots_with_bookings(slot_set)
        if booked:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "HAS_BOOKINGS",
                "Cannot delete slots that have existing bookings",
                slots_with_bookings=booked,
            )

        deleted = slot_set.total_slots
        if not self._delete_unbooked(slot_set):
            return self._booked_meanwhile(day, "delete")
        self.db.delete(slot_set)
        self.db.commit()

        logger.info("Deleted all %d slots for %s", deleted, normalize_date(day))
        return ServiceResult.ok(deleted, message="All slots deleted successfully for the date")

    # ------------------------------------------------------------------
    # Slot-level writes
    # ------------------------------------------------------------------

    def add_slot(self, day: DateLike, slot_data: Any) -> ServiceResult[DailySlotSet]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(
                ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date. Create slots first."
            )

        data = _slot_fields(slot_data)
        error = _validate_slot(data, slot_set.total_slots + 1)
        if error:
            return error

        existing = _find_overlap(data["start_time"], data["end_time"], slot_set.slots)
        if existing:
            return ServiceResult.fail(
                ErrorKind.CONFLICT,
                "OVERLAP",
                f"New slot overlaps with existing slot {existing.start_time}-{existing.end_time}",
                existing_slot_id=str(existing.id),
            )

        slot_set.slots.append(_build_slot(data))
        self.db.commit()
        self.db.refresh(slot_set)

        logger.info("Added slot %s-%s to %s", data["start_time"], data["end_time"], slot_set.date)
        return ServiceResult.ok(slot_set, message="Slot added successfully")

    def remove_slot(self, day: DateLike, slot_id: UUID) -> ServiceResult[DailySlotSet]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date")

        slot = next((s for s in slot_set.slots if s.id == slot_id), None)
        if not slot:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "Slot not found")
        if slot.current_bookings > 0:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL, "HAS_BOOKINGS", "Cannot remove slot with existing bookings"
            )

        if not self._delete_unbooked(slot_set, slot_id):
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL, "HAS_BOOKINGS", "Cannot remove slot with existing bookings"
            )
        self.db.commit()
        self.db.refresh(slot_set)

        logger.info("Removed slot %s from %s", slot_id, slot_set.date)
        return ServiceResult.ok(slot_set, message="Slot removed successfully")

    def book(self, day: DateLike, slot_id: UUID) -> ServiceResult[TimeSlot]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date")

        updated = (
            self.db.query(TimeSlot)
            .filter(
                TimeSlot.id == slot_id,
                TimeSlot.slot_set_id == slot_set.id,
                TimeSlot.is_available == True,
                TimeSlot.current_bookings < TimeSlot.max_bookings,
            )
            .update(
                {TimeSlot.current_bookings: TimeSlot.current_bookings + 1},
                synchronize_session=False,
            )
        )
        self.db.commit()

        slot = self.db.get(TimeSlot, slot_id)
        if slot is None or slot.slot_set_id != slot_set.id:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "Slot not found")
        if updated:
            self.db.refresh(slot)
            return ServiceResult.ok(slot, message="Slot booked successfully")
        if not slot.is_available:
            return ServiceResult.fail(ErrorKind.STATE_ILLEGAL, "NOT_AVAILABLE", "Slot is not available")
        return ServiceResult.fail(
            ErrorKind.CAPACITY_EXCEEDED,
            "FULL",
            "Slot is fully booked",
            max_bookings=slot.max_bookings,
        )

    def release(self, day: DateLike, slot_id: UUID) -> ServiceResult[TimeSlot]:
        slot_set = self.find_by_date(day)
        if not slot_set:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "No slots found for this date")

        updated = (
            self.db.query(TimeSlot)
            .filter(
                TimeSlot.id == slot_id,
                TimeSlot.slot_set_id == slot_set.id,
                TimeSlot.current_bookings > 0,
            )
            .update(
                {TimeSlot.current_bookings: TimeSlot.current_bookings - 1},
                synchronize_session=False,
            )
        )
        self.db.commit()

        slot = self.db.get(TimeSlot, slot_id)
        if slot is None or slot.slot_set_id != slot_set.id:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "Slot not found")
        if not updated:
            return ServiceResult.fail(ErrorKind.STATE_ILLEGAL, "NO_BOOKINGS", "No bookings to cancel")
        self.db.refresh(slot)
        return ServiceResult.ok(slot, message="Slot booking released")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self) -> Dict[str, Any]:
        total_days = (
            self.db.query(func.count(DailySlotSet.id)).filter(DailySlotSet.is_active == True).scalar()
        ) or 0

        totals = (
            self.db.query(
                func.count(TimeSlot.id),
                func.coalesce(func.sum(TimeSlot.max_bookings), 0),
                func.coalesce(func.sum(TimeSlot.current_bookings), 0),
            )
            .join(DailySlotSet, DailySlotSet.id == TimeSlot.slot_set_id)
            .filter(DailySlotSet.is_active == True)
            .one()
        )
        total_slots, total_capacity, booked = (int(v or 0) for v in totals)

        remaining = (
            self.db.query(func.coalesce(func.sum(TimeSlot.max_bookings - TimeSlot.current_bookings), 0))
            .join(DailySlotSet, DailySlotSet.id == TimeSlot.slot_set_id)
            .filter(DailySlotSet.is_active == True, TimeSlot.is_available == True)
            .scalar()
        ) or 0

        utilization = (booked / total_capacity * 100) if total_capacity else 0.0
        return {
            "total_days_with_slots": int(total_days),
            "total_slots": total_slots,
            "total_capacity": total_capacity,
            "available_capacity": int(remaining),
            "booked_slots": booked,
            "utilization_rate": f"{utilization:.2f}%",
        }
