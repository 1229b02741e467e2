import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import ErrorKind, ServiceResult
from app.models.working_day import WorkingDay
from app.services.slot_generator import SlotSpec, generate_slots
from app.utils.timeslots import ClockTime, is_valid_hhmm, sunday_based_weekday

logger = logging.getLogger(__name__)

TIME_FIELDS = ("start_time", "end_time", "break_start", "break_end")


def validate_working_hours(
    day_of_week: int,
    is_working: bool,
    start_time: Optional[str],
    end_time: Optional[str],
    break_start: Optional[str] = None,
    break_end: Optional[str] = None,
) -> Optional[ServiceResult]:
    """Return a failed result describing the first rule broken, or None."""
    if day_of_week is None or not 0 <= day_of_week <= 6:
        return ServiceResult.fail(
            ErrorKind.VALIDATION,
            "INVALID_DAY_OF_WEEK",
            "Day of week must be between 0 (Sunday) and 6 (Saturday).",
        )
    if not is_working:
        return None

    if not start_time or not end_time:
        return ServiceResult.fail(
            ErrorKind.VALIDATION, "MISSING_HOURS", "Start time and end time are required for working days."
        )
    values = {"start_time": start_time, "end_time": end_time, "break_start": break_start, "break_end": break_end}
    for field, value in values.items():
        if value and not is_valid_hhmm(value):
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "INVALID_TIME_FORMAT", f"{field} must be in HH:MM format", field=field
            )

    start = ClockTime.parse(start_time)
    end = ClockTime.parse(end_time)
    if end.compare(start) <= 0:
        return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_HOURS", "End time must be after start time")

    if break_start and break_end:
        b_start = ClockTime.parse(break_start)
        b_end = ClockTime.parse(break_end)
        if b_end.compare(b_start) <= 0:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "INVALID_BREAK", "Break end time must be after break start time"
            )
        if b_start < start or b_end > end:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "BREAK_OUTSIDE_HOURS", "Break time must be within working hours"
            )
    return None


def _canonical(value: Optional[str]) -> Optional[str]:
    return str(ClockTime.parse(value)) if value else None


class WorkingDayCalendar:
    def __init__(self, db: Session):
        self.db = db

    def get_day(self, day_of_week: int) -> Optional[WorkingDay]:
        return (
            self.db.query(WorkingDay)
            .filter(WorkingDay.day_of_week == day_of_week, WorkingDay.is_active == True)
            .first()
        )

    def working_days_map(self) -> Dict[int, WorkingDay]:
        days = self.db.query(WorkingDay).filter(WorkingDay.is_active == True).all()
        return {d.day_of_week: d for d in days}

    def is_working_date(self, day: date) -> bool:
        working_day = self.get_day(sunday_based_weekday(day))
        return bool(working_day and working_day.is_working)

    def get_all(self) -> List[WorkingDay]:
        """Seven entries, Sunday first; unconfigured days come back as transient non-working rows."""
        configured = {
            d.day_of_week: d
            for d in self.db.query(WorkingDay).filter(WorkingDay.is_active == True).all()
        }
        return [
            configured.get(dow) or WorkingDay(day_of_week=dow, is_working=False, is_active=False)
            for dow in range(7)
        ]

    def _apply(self, data: Dict[str, Any], actor: str) -> Tuple[WorkingDay, bool]:
        is_working = bool(data.get("is_working"))
        fields = {f: (_canonical(data.get(f)) if is_working else None) for f in TIME_FIELDS}

        working_day = self.db.query(WorkingDay).filter(WorkingDay.day_of_week == data["day_of_week"]).first()
        created = working_day is None
        if created:
            working_day = WorkingDay(day_of_week=data["day_of_week"], created_by=str(actor))
            self.db.add(working_day)
        else:
            working_day.updated_by = str(actor)

        working_day.is_working = is_working
        for field, value in fields.items():
            setattr(working_day, field, value)
        working_day.is_active = True
        return working_day, created

    def create_or_update(self, data: Dict[str, Any], actor: str) -> ServiceResult[WorkingDay]:
        error = validate_working_hours(
            data.get("day_of_week"),
            data.get("is_working", False),
            *(data.get(f) for f in TIME_FIELDS),
        )
        if error:
            return error

        working_day, created = self._apply(data, actor)
        self.db.commit()
        self.db.refresh(working_day)

        logger.info(
            "Working day %s %s: working=%s %s-%s",
            working_day.day_name, "created" if created else "updated",
            working_day.is_working, working_day.start_time, working_day.end_time,
        )
        return ServiceResult.ok(
            working_day,
            message=f"Working day {'created' if created else 'updated'} successfully",
            created=created,
        )

    def bulk_update(self, entries: Iterable[Dict[str, Any]], actor: str) -> ServiceResult[List[WorkingDay]]:
        """Validate every entry first; nothing is written unless all are valid."""
        entries = list(entries)
        if not entries:
            return ServiceResult.fail(ErrorKind.VALIDATION, "EMPTY_PAYLOAD", "Working days data is required.")

        seen = set()
        for index, data in enumerate(entries):
            error = validate_working_hours(
                data.get("day_of_week"),
                data.get("is_working", False),
                *(data.get(f) for f in TIME_FIELDS),
            )
            if error:
                error.details["index"] = index
                return error
            if data["day_of_week"] in seen:
                return ServiceResult.fail(
                    ErrorKind.VALIDATION,
                    "DUPLICATE_DAY",
                    f"Day of week {data['day_of_week']} appears more than once",
                    index=index,
                )
            seen.add(data["day_of_week"])

        updated = [self._apply(data, actor)[0] for data in entries]
        self.db.commit()
        for working_day in updated:
            self.db.refresh(working_day)

        logger.info("Bulk updated %d working days", len(updated))
        return ServiceResult.ok(updated, message=f"{len(updated)} working days updated successfully")

    def soft_delete(self, day_of_week: int, actor: str) -> ServiceResult[WorkingDay]:
        working_day = self.db.query(WorkingDay).filter(WorkingDay.day_of_week == day_of_week).first()
        if not working_day:
            return ServiceResult.fail(
                ErrorKind.NOT_FOUND, "NOT_FOUND", "Working day configuration not found."
            )

        working_day.is_working = False
        for field in TIME_FIELDS:
            setattr(working_day, field, None)
        working_day.is_active = False
        working_day.updated_by = str(actor)
        self.db.commit()
        self.db.refresh(working_day)

        logger.info("Working day %s set as non-working", working_day.day_name)
        return ServiceResult.ok(working_day, message="Working day set as non-working successfully")

    def statistics(self) -> Dict[str, Any]:
        days = self.db.query(WorkingDay).filter(WorkingDay.is_active == True).order_by(WorkingDay.day_of_week).all()
        working = [d for d in days if d.is_working]
        return {
            "total_days": 7,
            "working_days": len(working),
            "non_working_days": 7 - len(working),
            "weekly_working_minutes": sum(d.working_minutes for d in working),
            "working_days_list": days,
        }

    def candidate_slots_for_date(
        self, day: date, slot_duration_minutes: int
    ) -> Tuple[Optional[WorkingDay], List[SlotSpec]]:
        """Preview the slot boundaries a date would get; capacity is a placeholder of 1."""
        working_day = self.get_day(sunday_based_weekday(day))
        if not working_day or not working_day.is_working:
            return working_day, []
        return working_day, generate_slots(working_day, slot_duration_minutes, 1)
