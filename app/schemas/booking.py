from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field, UUID4, field_validator
from decimal import Decimal
from datetime import date, datetime

from app.models.booking import BookingSource, PaymentMethod
from app.utils.timeslots import SLOT_LABEL_PATTERN


# One service line on a booking
class ServiceItem(BaseModel):
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    category: Optional[str] = None
    duration: int = 0                        # minutes per unit


class Address(BaseModel):
    line1: str
    line2: Optional[str] = None
    landmark: Optional[str] = None
    city: str
    state: Optional[str] = None
    pincode: str


# Booking - Create (POST /bookings)
class BookingCreate(BaseModel):
    services: List[ServiceItem] = Field(min_length=1)
    booking_date: date
    booking_slot: str                        # "HH:MM AM/PM", e.g. "10:00 AM - 11:00 AM"
    address: Address
    duration: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.online
    customer_notes: Optional[str] = Field(default=None, max_length=500)
    source: BookingSource = BookingSource.web

    @field_validator("booking_slot")
    @classmethod
    def check_slot(cls, v):
        v = v.strip()
        if not SLOT_LABEL_PATTERN.match(v):
            raise ValueError("booking_slot must start with an 'HH:MM AM/PM' time")
        return v


# PATCH /bookings/{id}/cancel
class BookingCancel(BaseModel):
    reason: Optional[str] = None


# PATCH /bookings/{id}/reschedule
class BookingReschedule(BaseModel):
    new_date: date
    new_slot: str
    new_payment_method: Optional[PaymentMethod] = None
    reason: Optional[str] = Field(default=None, max_length=500)


# POST /bookings/{id}/payment
class PaymentComplete(BaseModel):
    payment_method: PaymentMethod = PaymentMethod.online
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    gateway_signature: Optional[str] = None


# PATCH /admin/bookings/{id}/status
class BookingStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = Field(default=None, max_length=500)


# Booking - Full response
class Booking(BaseModel):
    id: UUID4
    order_number: str
    user_id: UUID4
    services: List[Dict[str, Any]]
    booking_date: date
    booking_slot: str
    duration: int
    address: Dict[str, Any]
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: Optional[str] = "INR"
    status: str
    payment_status: str
    payment_method: str
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    refund_eligible: Optional[bool] = None
    original_date: Optional[date] = None
    original_slot: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    rescheduled_by: Optional[str] = None
    reschedule_reason: Optional[str] = None
    reschedule_count: int = 0
    customer_notes: Optional[str] = None
    source: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Computed on read from the clock and the current config thresholds
    can_be_cancelled: bool = False
    can_be_rescheduled: bool = False

    class Config:
        from_attributes = True


# Admin view adds gateway references and internal notes
class AdminBooking(Booking):
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    admin_notes: Optional[str] = None

    class Config:
        from_attributes = True


class BookingActionResponse(BaseModel):
    message: str
    booking: Booking


class BookingCancelResponse(BookingActionResponse):
    refund_eligible: Optional[bool] = None


class BookingRescheduleResponse(BookingActionResponse):
    remaining_reschedules: int


class BookingStats(BaseModel):
    total_bookings: int
    by_status: Dict[str, int]
    total_spent: float
    upcoming: int


class PopularService(BaseModel):
    name: str
    count: int


class BookingAnalytics(BaseModel):
    total_bookings: int
    by_status: Dict[str, int]
    by_payment_status: Dict[str, int]
    total_revenue: float
    average_order_value: float
    cancellation_rate: str
    total_reschedules: int
    popular_services: List[PopularService]
    date_range: Dict[str, Optional[str]]
