
import uuid
from sqlalchemy import Column, String, Boolean, Date, DateTime, func, Integer, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class DailySlotSet(Base):
    """All bookable time slots for one calendar date."""
    __tablename__ = "daily_slot_sets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    date = Column(Date, unique=True, nullable=False, index=True)
    created_by = Column(String(64), nullable=False)   # "system" or an admin user id
    is_active = Column(Boolean, default=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    slots = relationship(
        "TimeSlot",
        back_populates="slot_set",
        cascade="all, delete-orphan",
        order_by="TimeSlot.start_time",
    )

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def available_slots_count(self) -> int:
        return sum(1 for s in self.slots if s.has_capacity)

    @property
    def has_bookings(self) -> bool:
        return any(s.current_bookings > 0 for s in self.slots)


class TimeSlot(Base):
    __tablename__ = "daily_slots"
    __table_args__ = (
        CheckConstraint("max_bookings >= 1", name="ck_daily_slots_max_bookings"),
        CheckConstraint(
            "current_bookings >= 0 AND current_bookings <= max_bookings",
            name="ck_daily_slots_current_bookings",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slot_set_id = Column(UUID(as_uuid=True), ForeignKey("daily_slot_sets.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(String(5), nullable=False)   # "HH:MM"; zero-padded so it sorts as text
    end_time = Column(String(5), nullable=False)
    max_bookings = Column(Integer, nullable=False, default=10)
    current_bookings = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)
    notes = Column(String(200), nullable=True)

    slot_set = relationship("DailySlotSet", back_populates="slots")

    @property
    def remaining(self) -> int:
        return self.max_bookings - self.current_bookings

    @property
    def has_capacity(self) -> bool:
        return bool(self.is_available) and self.current_bookings < self.max_bookings
