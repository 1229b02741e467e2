
import uuid
from typing import Optional

from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from app.db.session import Base
from app.utils.timeslots import ClockTime

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class WorkingDay(Base):
    """Weekly template for one weekday (0 = Sunday ... 6 = Saturday)."""
    __tablename__ = "working_days"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_working_days_day_of_week"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    day_of_week = Column(Integer, unique=True, nullable=False, index=True)
    is_working = Column(Boolean, default=True, nullable=False)
    start_time = Column(String(5), nullable=True)   # "HH:MM"
    end_time = Column(String(5), nullable=True)
    break_start = Column(String(5), nullable=True)
    break_end = Column(String(5), nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    created_by = Column(String(64), nullable=True)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]

    @property
    def start(self) -> Optional[ClockTime]:
        return ClockTime.parse(self.start_time) if self.start_time else None

    @property
    def end(self) -> Optional[ClockTime]:
        return ClockTime.parse(self.end_time) if self.end_time else None

    @property
    def break_window(self) -> Optional[tuple]:
        """(start, end) ClockTimes, or None unless both break fields are set."""
        if self.break_start and self.break_end:
            return ClockTime.parse(self.break_start), ClockTime.parse(self.break_end)
        return None

    @property
    def working_minutes(self) -> int:
        if not self.is_working or not self.start_time or not self.end_time:
            return 0
        return self.end.to_minutes() - self.start.to_minutes()

    def is_working_at(self, value: str) -> bool:
        """True when ``value`` ("HH:MM") is inside working hours and outside the break."""
        if not self.is_working or not self.start_time or not self.end_time:
            return False
        minutes = ClockTime.parse(value).to_minutes()
        if minutes < self.start.to_minutes() or minutes >= self.end.to_minutes():
            return False
        window = self.break_window
        if window and window[0].to_minutes() <= minutes < window[1].to_minutes():
            return False
        return True
