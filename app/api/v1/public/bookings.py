from uuid import UUID
from typing import List, Optional
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_booking_lifecycle, get_current_user
from app.core.errors import raise_for_result
from app.models.booking import ActingRole
from app.models.user import User
from app.services.booking_lifecycle import BookingLifecycle
from app.schemas.booking import (
    Booking as BookingSchema,
    BookingActionResponse,
    BookingCancel,
    BookingCancelResponse,
    BookingCreate,
    BookingReschedule,
    BookingRescheduleResponse,
    BookingStats,
    PaymentComplete,
)
from app.schemas.common import PaginatedResponse

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingSchema, status_code=status.HTTP_201_CREATED)
def create_booking(
    body: BookingCreate,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """Place a booking. 400 MINIMUM_ORDER_VALUE_NOT_MET when the cart is below the configured minimum."""
    return raise_for_result(lifecycle.create(current_user.id, body.model_dump()))


@router.get("", response_model=PaginatedResponse[BookingSchema])
def list_my_bookings(
    status: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    service: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    return lifecycle.list_for_user(
        current_user.id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        service=service,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=BookingStats)
def my_booking_stats(
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    return lifecycle.stats(current_user.id)


@router.get("/upcoming", response_model=List[BookingSchema])
def my_upcoming_bookings(
    limit: int = Query(5, ge=1, le=100),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    return lifecycle.upcoming(current_user.id, limit=limit)


@router.get("/search", response_model=PaginatedResponse[BookingSchema])
def search_my_bookings(
    q: str = Query(..., min_length=1),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """Match on order number or service name."""
    return lifecycle.search(current_user.id, q, status=status, page=page, limit=limit)


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: UUID,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    return raise_for_result(lifecycle.get(booking_id, user_id=current_user.id))


@router.patch("/{booking_id}/cancel", response_model=BookingCancelResponse)
def cancel_booking(
    booking_id: UUID,
    body: BookingCancel,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """Cancel while more than the cancellation window remains before the booking."""
    result = lifecycle.cancel(
        booking_id, reason=body.reason, acting_role=ActingRole.customer, user_id=current_user.id
    )
    booking = raise_for_result(result)
    return BookingCancelResponse(
        message=result.message,
        booking=BookingSchema.model_validate(booking),
        refund_eligible=result.details.get("refund_eligible"),
    )


@router.patch("/{booking_id}/reschedule", response_model=BookingRescheduleResponse)
def reschedule_booking(
    booking_id: UUID,
    body: BookingReschedule,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    result = lifecycle.reschedule(
        booking_id,
        new_date=body.new_date,
        new_slot=body.new_slot,
        new_payment_method=body.new_payment_method,
        reason=body.reason,
        acting_role=ActingRole.customer,
        user_id=current_user.id,
    )
    booking = raise_for_result(result)
    return BookingRescheduleResponse(
        message=result.message,
        booking=BookingSchema.model_validate(booking),
        remaining_reschedules=result.details["remaining_reschedules"],
    )


@router.post("/{booking_id}/payment", response_model=BookingActionResponse)
def complete_payment(
    booking_id: UUID,
    body: PaymentComplete,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """Record a verified gateway payment, or switch the booking to cash on delivery."""
    result = lifecycle.complete_payment(
        booking_id,
        method=body.payment_method,
        gateway_data=body.model_dump(exclude={"payment_method"}),
        user_id=current_user.id,
    )
    booking = raise_for_result(result)
    return BookingActionResponse(message=result.message, booking=BookingSchema.model_validate(booking))
