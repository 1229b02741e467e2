from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_booking_lifecycle, get_current_admin_user
from app.core.errors import raise_for_result
from app.models.booking import ActingRole
from app.models.user import User
from app.services.booking_lifecycle import BookingLifecycle
from app.schemas.booking import (
    AdminBooking,
    BookingAnalytics,
    BookingCancel,
    BookingCancelResponse,
    BookingReschedule,
    BookingRescheduleResponse,
    BookingStatusUpdate,
)
from app.schemas.common import PaginatedResponse

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


@router.get("", response_model=PaginatedResponse[AdminBooking])
def list_all_bookings(
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_admin_user),
):
    return lifecycle.list_all(
        status=status,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        page=page,
        limit=limit,
    )


@router.get("/analytics", response_model=BookingAnalytics)
def booking_analytics(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_admin_user),
):
    return lifecycle.analytics(start_date=start_date, end_date=end_date)


@router.patch("/{booking_id}/status", response_model=AdminBooking)
def update_booking_status(
    booking_id: UUID,
    body: BookingStatusUpdate,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_admin_user),
):
    """Move a booking along pending → confirmed → in_progress → completed, or end it."""
    return raise_for_result(
        lifecycle.update_status(booking_id, body.status, acting_role=ActingRole.admin, notes=body.notes)
    )


@router.patch("/{booking_id}/cancel", response_model=BookingCancelResponse)
def admin_cancel_booking(
    booking_id: UUID,
    body: BookingCancel,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_admin_user),
):
    result = lifecycle.cancel(booking_id, reason=body.reason, acting_role=ActingRole.admin)
    booking = raise_for_result(result)
    return BookingCancelResponse(
        message=result.message,
        booking=AdminBooking.model_validate(booking),
        refund_eligible=result.details.get("refund_eligible"),
    )


@router.patch("/{booking_id}/reschedule", response_model=BookingRescheduleResponse)
def admin_reschedule_booking(
    booking_id: UUID,
    body: BookingReschedule,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_user: User = Depends(get_current_admin_user),
):
    result = lifecycle.reschedule(
        booking_id,
        new_date=body.new_date,
        new_slot=body.new_slot,
        new_payment_method=body.new_payment_method,
        reason=body.reason,
        acting_role=ActingRole.admin,
    )
    booking = raise_for_result(result)
    return BookingRescheduleResponse(
        message=result.message,
        booking=AdminBooking.model_validate(booking),
        remaining_reschedules=result.details["remaining_reschedules"],
    )
