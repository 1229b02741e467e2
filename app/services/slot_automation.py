"""
Rolling generation of daily slot sets from the working-day calendar.

The loop is sequential and idempotent: dates that already have a slot set
are skipped, so re-running a window only fills the gaps.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.errors import ErrorKind, ServiceResult
from app.models.daily_slot import DailySlotSet
from app.models.working_day import DAY_NAMES
from app.services.daily_slots import DailySlotStore
from app.services.slot_generator import generate_slots
from app.services.working_days import WorkingDayCalendar
from app.utils.timeslots import normalize_date, sunday_based_weekday

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

GENERATED = "generated"
SKIPPED = "skipped"
ERROR = "error"


@dataclass
class DateOutcome:
    date: date
    status: str
    reason: str = ""
    slots: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "status": self.status,
            "reason": self.reason,
            "slots": self.slots,
        }


@dataclass
class GenerationSummary:
    start_date: date
    end_date: date
    generated: int = 0
    skipped: int = 0
    errors: int = 0
    duration_ms: int = 0
    outcomes: List[DateOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.generated + self.skipped + self.errors

    def record(self, outcome: DateOutcome) -> None:
        if outcome.status == GENERATED:
            self.generated += 1
        elif outcome.status == SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1
        self.outcomes.append(outcome)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "generated": self.generated,
            "skipped": self.skipped,
            "errors": self.errors,
            "total": self.total,
            "date_range": {"start": self.start_date.isoformat(), "end": self.end_date.isoformat()},
            "duration_ms": self.duration_ms,
            "details": [o.as_dict() for o in self.outcomes],
        }


DateLike = Union[date, datetime]


class SchedulingAutomationJob:
    def __init__(
        self,
        db: Session,
        clock: Clock = system_clock,
        slot_duration_minutes: Optional[int] = None,
        max_bookings_per_slot: Optional[int] = None,
        days_ahead: Optional[int] = None,
        weekly_days_ahead: Optional[int] = None,
        max_range_days: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.slot_duration_minutes = slot_duration_minutes or settings.DEFAULT_SLOT_DURATION
        self.max_bookings_per_slot = max_bookings_per_slot or settings.DEFAULT_MAX_BOOKINGS
        self.days_ahead = days_ahead or settings.AUTO_GENERATE_DAYS_AHEAD
        self.weekly_days_ahead = weekly_days_ahead or settings.WEEKLY_GENERATE_DAYS_AHEAD
        self.max_range_days = max_range_days or settings.MAX_GENERATION_RANGE_DAYS
        self.calendar = WorkingDayCalendar(db)
        self.store = DailySlotStore(db)

    def today(self) -> date:
        return self.clock().date()

    # ------------------------------------------------------------------
    # Core loop
    # ------------------------------------------------------------------

    def _generate_one(self, day: date, working_days: Dict[int, Any]) -> DateOutcome:
        if self.store.exists_for_date(day):
            return DateOutcome(day, SKIPPED, "slots already exist")

        working_day = working_days.get(sunday_based_weekday(day))
        if not working_day or not working_day.is_working:
            return DateOutcome(day, SKIPPED, "non-working day")

        specs = generate_slots(working_day, self.slot_duration_minutes, self.max_bookings_per_slot)
        if not specs:
            return DateOutcome(day, SKIPPED, "no slots fit the working hours")

        result = self.store.create_for_date(
            day,
            specs,
            actor=SYSTEM_ACTOR,
            notes=f"Auto-generated for {working_day.day_name}",
        )
        if result.success:
            return DateOutcome(day, GENERATED, slots=len(specs))
        if result.code == "DUPLICATE_DATE":
            return DateOutcome(day, SKIPPED, "slots already exist")
        return DateOutcome(day, ERROR, result.message)

    def _run(self, start: date, end: date) -> GenerationSummary:
        started = time.monotonic()
        summary = GenerationSummary(start_date=start, end_date=end)

        working_days = self.calendar.working_days_map()
        if not working_days:
            logger.warning("No working days configured; skipping slot generation")
            summary.duration_ms = int((time.monotonic() - started) * 1000)
            return summary

        day = start
        while day <= end:
            try:
                outcome = self._generate_one(day, working_days)
            except Exception as exc:
                self.db.rollback()
                logger.exception("Slot generation failed for %s", day)
                outcome = DateOutcome(day, ERROR, str(exc))
            if outcome.status == GENERATED:
                logger.info("Generated %d slots for %s", outcome.slots, day)
            summary.record(outcome)
            day += timedelta(days=1)

        summary.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Slot generation %s..%s finished: %d generated, %d skipped, %d errors in %dms",
            start, end, summary.generated, summary.skipped, summary.errors, summary.duration_ms,
        )
        return summary

    # ------------------------------------------------------------------
    # Scheduled entry points
    # ------------------------------------------------------------------

    def run_daily(self) -> GenerationSummary:
        today = self.today()
        return self._run(today, today + timedelta(days=self.days_ahead))

    def run_weekly(self) -> GenerationSummary:
        # Only the end date is extended in the log; the run itself covers the daily window
        weekly_end = self.today() + timedelta(days=self.weekly_days_ahead)
        logger.info("Weekly slot generation through %s", weekly_end)
        return self.run_daily()

    # ------------------------------------------------------------------
    # Manual entry points
    # ------------------------------------------------------------------

    def generate_range(self, start: DateLike, end: DateLike) -> ServiceResult[GenerationSummary]:
        start, end = normalize_date(start), normalize_date(end)
        if start > end:
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_RANGE", "start_date must be before end_date")
        span = (end - start).days
        if span > self.max_range_days:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "RANGE_TOO_LARGE",
                f"Date range cannot exceed {self.max_range_days} days",
                requested_days=span,
            )
        summary = self._run(start, end)
        return ServiceResult.ok(summary, message=f"Generated slots for {summary.generated} dates")

    def generate_next_days(self, days: int) -> ServiceResult[GenerationSummary]:
        if not 1 <= days <= self.max_range_days:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "INVALID_DAYS",
                f"Days must be between 1 and {self.max_range_days}",
            )
        today = self.today()
        summary = self._run(today, today + timedelta(days=days))
        return ServiceResult.ok(summary, message=f"Generated slots for {summary.generated} dates")

    def generate_for_date(self, day: DateLike) -> ServiceResult[DailySlotSet]:
        day = normalize_date(day)
        today = self.today()
        if day < today:
            return ServiceResult.fail(ErrorKind.VALIDATION, "DATE_IN_PAST", "Cannot generate slots for past dates")
        if (day - today).days > self.max_range_days:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "DATE_TOO_FAR",
                f"Cannot generate slots more than {self.max_range_days} days ahead",
            )
        if self.store.exists_for_date(day):
            return ServiceResult.fail(
                ErrorKind.CONFLICT, "DUPLICATE_DATE", "Slots already exist for this date", date=day.isoformat()
            )

        working_day = self.calendar.get_day(sunday_based_weekday(day))
        if not working_day or not working_day.is_working:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "NON_WORKING_DAY",
                f"{DAY_NAMES[sunday_based_weekday(day)]} is not a working day",
                date=day.isoformat(),
            )

        specs = generate_slots(working_day, self.slot_duration_minutes, self.max_bookings_per_slot)
        if not specs:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL, "NO_SLOTS", "Working hours are too short for a single slot"
            )
        return self.store.create_for_date(
            day, specs, actor=SYSTEM_ACTOR, notes=f"Generated for {working_day.day_name}"
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def generation_status(self, start: DateLike, end: DateLike) -> ServiceResult[List[Dict[str, Any]]]:
        start, end = normalize_date(start), normalize_date(end)
        if start > end:
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_RANGE", "start_date must be before end_date")
        if (end - start).days > self.max_range_days:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "RANGE_TOO_LARGE", f"Date range cannot exceed {self.max_range_days} days"
            )

        working_days = self.calendar.working_days_map()
        existing = {
            s.date: s
            for s in self.db.query(DailySlotSet)
            .filter(DailySlotSet.date >= start, DailySlotSet.date <= end)
            .all()
        }

        rows = []
        day = start
        while day <= end:
            dow = sunday_based_weekday(day)
            working_day = working_days.get(dow)
            slot_set = existing.get(day)
            rows.append({
                "date": day.isoformat(),
                "day_name": DAY_NAMES[dow],
                "is_working_day": bool(working_day and working_day.is_working),
                "has_slots": slot_set is not None,
                "slot_count": slot_set.total_slots if slot_set else 0,
            })
            day += timedelta(days=1)
        return ServiceResult.ok(rows)

    def summary(self) -> Dict[str, Any]:
        today = self.today()
        horizon = today + timedelta(days=self.days_ahead)
        upcoming = (
            self.db.query(DailySlotSet)
            .filter(DailySlotSet.date >= today, DailySlotSet.date <= horizon)
            .all()
        )
        days = self.calendar.get_all()
        return {
            "working_days": [
                {
                    "day_of_week": d.day_of_week,
                    "day_name": d.day_name,
                    "is_working": bool(d.is_working),
                    "start_time": d.start_time,
                    "end_time": d.end_time,
                    "break_start": d.break_start,
                    "break_end": d.break_end,
                }
                for d in days
            ],
            "working_day_count": sum(1 for d in days if d.is_working),
            "upcoming_dates_with_slots": len(upcoming),
            "upcoming_auto_generated": sum(1 for s in upcoming if s.created_by == SYSTEM_ACTOR),
            "window_days": self.days_ahead,
            "slot_duration_minutes": self.slot_duration_minutes,
            "max_bookings_per_slot": self.max_bookings_per_slot,
        }
