
import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, func, DECIMAL, Integer, ForeignKey, Text, Date, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.utils.timeslots import hours_until_booking


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"
    partially_refunded = "partially_refunded"


class PaymentMethod(str, enum.Enum):
    online = "online"
    cod = "cod"
    wallet = "wallet"
    upi = "upi"
    card = "card"
    netbanking = "netbanking"


class BookingSource(str, enum.Enum):
    web = "web"
    mobile = "mobile"
    admin = "admin"


class ActingRole(str, enum.Enum):
    customer = "customer"
    admin = "admin"
    system = "system"


TERMINAL_STATUSES = frozenset({"cancelled", "completed", "no_show"})
ACTIVE_STATUSES = frozenset({"pending", "confirmed", "in_progress"})

# One-way progression; cancelled / no_show are reachable from any active state
ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled", "no_show"},
    "confirmed": {"in_progress", "cancelled", "no_show"},
    "in_progress": {"completed", "cancelled", "no_show"},
    "completed": set(),
    "cancelled": set(),
    "no_show": set(),
}


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(40), unique=True, nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    services = Column(JSON, nullable=False)   # [{name, price, quantity, category, duration}]

    # Customer-facing slot label, "HH:MM AM/PM" (not the admin "HH:MM" grammar)
    booking_date = Column(Date, nullable=False, index=True)
    booking_slot = Column(String(50), nullable=False)
    duration = Column(Integer, nullable=False)
    address = Column(JSON, nullable=False)

    subtotal = Column(DECIMAL(10, 2), nullable=False)
    tax_amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    total_amount = Column(DECIMAL(10, 2), nullable=False)
    currency = Column(String(3), default="INR")

    status = Column(String(20), nullable=False, default=BookingStatus.pending.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.pending.value, index=True)

    gateway_order_id = Column(String(100), nullable=True)
    gateway_payment_id = Column(String(100), nullable=True)
    gateway_signature = Column(String(255), nullable=True)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.online.value)
    paid_at = Column(DateTime, nullable=True)

    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(20), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    refund_eligible = Column(Boolean, nullable=True)

    original_date = Column(Date, nullable=True)
    original_slot = Column(String(50), nullable=True)
    rescheduled_at = Column(DateTime, nullable=True)
    rescheduled_by = Column(String(20), nullable=True)
    reschedule_reason = Column(String(500), nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=0)

    customer_notes = Column(String(500), nullable=True)
    admin_notes = Column(String(500), nullable=True)
    source = Column(String(10), default=BookingSource.web.value)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    user = relationship("User")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def hours_until(self, now: datetime) -> float:
        return hours_until_booking(self.booking_date, self.booking_slot, now)

    def is_cancellable(self, now: datetime, window_hours: float) -> bool:
        if self.is_terminal:
            return False
        return self.hours_until(now) > window_hours

    def is_reschedulable(self, now: datetime, window_hours: float, max_count: int) -> bool:
        if self.is_terminal:
            return False
        if (self.reschedule_count or 0) >= max_count:
            return False
        return self.hours_until(now) > window_hours

    def is_upcoming(self, now: datetime) -> bool:
        return self.hours_until(now) > 0
