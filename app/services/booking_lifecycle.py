"""
Booking lifecycle: creation, status transitions, cancellation, rescheduling
and payment completion.

Timing rules read their thresholds from BookingConfig through
``BookingConfigService.get_value``; a missing or unreadable config falls
back to the settings defaults (and skips the minimum order check) rather
than blocking bookings. Notifications go out only after the commit.
"""
import logging
import math
import random
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.errors import ErrorKind, ServiceResult
from app.models.booking import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    ActingRole,
    Booking,
    BookingSource,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
)
from app.models.booking_config import ConfigKey
from app.services import notifications
from app.services.booking_config import BookingConfigService
from app.services.notifications import Notifier, dispatch
from app.services.payment_gateway import PaymentGateway
from app.utils.timeslots import SLOT_LABEL_PATTERN, combine_date_and_slot, normalize_date

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
RUPEE = Decimal("1")
MAX_PAGE_SIZE = 100


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_tax(subtotal: Decimal) -> Decimal:
    """GST on ``subtotal``, rounded half-up to whole rupees."""
    tax = (subtotal * settings.TAX_RATE_PERCENT / 100).quantize(RUPEE, rounding=ROUND_HALF_UP)
    return _money(tax)


def _enum_value(enum_cls, value, default: Optional[str] = None) -> Optional[str]:
    """Canonical value of ``value`` in ``enum_cls``; ``default`` when empty, None when unknown."""
    if value is None or value == "":
        return default
    try:
        return enum_cls(value).value
    except ValueError:
        return None


def _invalid_choice(code: str, field: str, value, enum_cls) -> ServiceResult:
    return ServiceResult.fail(
        ErrorKind.VALIDATION,
        code,
        f"Invalid {field} '{value}'",
        allowed=[m.value for m in enum_cls],
    )


def generate_order_number(now: datetime) -> str:
    """``BOOK-<year>-<epoch ms>-<4 random digits>``."""
    millis = int(now.timestamp() * 1000)
    return f"BOOK-{now.year}-{millis}-{random.randint(0, 9999):04d}"


def _role_value(role) -> str:
    return role.value if isinstance(role, ActingRole) else str(role)


def _paginate(query, page: int, limit: int) -> Dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "data": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def _paginate_list(items: List[Booking], page: int, limit: int) -> Dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = len(items)
    start = (page - 1) * limit
    return {
        "data": items[start:start + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def _has_service(booking: Booking, needle: str) -> bool:
    needle = needle.lower()
    return any(needle in str(s.get("name", "")).lower() for s in booking.services or [])


def _event_payload(booking: Booking, **extra) -> Dict[str, Any]:
    payload = {
        "booking_id": str(booking.id),
        "order_number": booking.order_number,
        "user_id": str(booking.user_id),
        "booking_date": booking.booking_date.isoformat() if booking.booking_date else None,
        "booking_slot": booking.booking_slot,
        "status": booking.status,
        "total_amount": float(booking.total_amount or 0),
    }
    payload.update(extra)
    return payload


class BookingLifecycle:
    def __init__(
        self,
        db: Session,
        configs: BookingConfigService,
        notifier: Notifier,
        gateway: PaymentGateway,
        clock: Clock = system_clock,
    ):
        self.db = db
        self.configs = configs
        self.notifier = notifier
        self.gateway = gateway
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _threshold(self, key: ConfigKey, default: float) -> float:
        value = self.configs.get_value(key.value)
        return default if value is None else value

    def cancellation_window(self) -> float:
        return self._threshold(ConfigKey.CANCELLATION_WINDOW_HOURS, settings.DEFAULT_CANCELLATION_WINDOW_HOURS)

    def reschedule_window(self) -> float:
        return self._threshold(ConfigKey.RESCHEDULE_WINDOW_HOURS, settings.DEFAULT_RESCHEDULE_WINDOW_HOURS)

    def max_reschedules(self) -> int:
        return int(self._threshold(ConfigKey.MAX_RESCHEDULE_COUNT, settings.DEFAULT_MAX_RESCHEDULE_COUNT))

    def _with_flags(self, bookings: List[Booking]) -> List[Booking]:
        """Set ``can_be_cancelled`` / ``can_be_rescheduled`` as of now."""
        if not bookings:
            return bookings
        now = self.clock()
        cancel_window = self.cancellation_window()
        reschedule_window = self.reschedule_window()
        max_count = self.max_reschedules()
        for booking in bookings:
            booking.can_be_cancelled = booking.is_cancellable(now, cancel_window)
            booking.can_be_rescheduled = booking.is_reschedulable(now, reschedule_window, max_count)
        return bookings

    def _flagged(self, booking: Booking) -> Booking:
        return self._with_flags([booking])[0]

    def _flagged_page(self, page: Dict[str, Any]) -> Dict[str, Any]:
        self._with_flags(page["data"])
        return page

    def _load(self, booking_id: UUID, user_id: Optional[UUID] = None) -> Optional[Booking]:
        query = self.db.query(Booking).filter(Booking.id == booking_id)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        return query.first()

    def _not_found(self) -> ServiceResult:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "NOT_FOUND", "Booking not found")

    def _timing_details(self, window: float, hours_left: float) -> Dict[str, Any]:
        return {
            "window_hours": window,
            "hours_until_booking": round(hours_left, 2) if math.isfinite(hours_left) else None,
            "can_contact": True,
            "support_email": settings.SUPPORT_EMAIL,
        }

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, user_id: UUID, payload: Dict[str, Any]) -> ServiceResult[Booking]:
        services = payload.get("services") or []
        if not services:
            return ServiceResult.fail(ErrorKind.VALIDATION, "EMPTY_SERVICES", "At least one service is required")

        slot = (payload.get("booking_slot") or "").strip()
        if not SLOT_LABEL_PATTERN.match(slot):
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "INVALID_SLOT", "Booking slot must start with an 'HH:MM AM/PM' time"
            )
        payment_method = _enum_value(PaymentMethod, payload.get("payment_method"), PaymentMethod.online.value)
        if payment_method is None:
            return _invalid_choice("INVALID_PAYMENT_METHOD", "payment method", payload["payment_method"], PaymentMethod)
        source = _enum_value(BookingSource, payload.get("source"), BookingSource.web.value)
        if source is None:
            return _invalid_choice("INVALID_SOURCE", "source", payload["source"], BookingSource)

        subtotal = _money(sum(Decimal(str(s["price"])) * int(s.get("quantity", 1)) for s in services))

        minimum = self.configs.get_value(ConfigKey.MINIMUM_ORDER_VALUE.value)
        if minimum is not None and subtotal < _money(minimum):
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "MINIMUM_ORDER_VALUE_NOT_MET",
                f"Minimum order value is ₹{minimum:g}. Please add services worth ₹{float(_money(minimum) - subtotal):g} more.",
                minimum_order_value=float(minimum),
                current_total=float(subtotal),
                shortfall=float(_money(minimum) - subtotal),
            )

        now = self.clock()
        booking_date = normalize_date(payload["booking_date"])
        if booking_date < now.date():
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_DATE", "Booking date cannot be in the past")

        tax = compute_tax(subtotal)
        duration = payload.get("duration") or sum(
            int(s.get("duration", 0)) * int(s.get("quantity", 1)) for s in services
        )

        booking = Booking(
            order_number=generate_order_number(now),
            user_id=user_id,
            services=[{**s, "price": float(Decimal(str(s["price"])))} for s in services],
            booking_date=booking_date,
            booking_slot=slot,
            duration=duration,
            address=dict(payload.get("address") or {}),
            subtotal=subtotal,
            tax_amount=tax,
            total_amount=subtotal + tax,
            status=BookingStatus.pending.value,
            payment_status=PaymentStatus.pending.value,
            payment_method=payment_method,
            customer_notes=payload.get("customer_notes"),
            source=source,
            reschedule_count=0,
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)

        logger.info("Booking %s created for user %s", booking.order_number, user_id)
        dispatch(self.notifier, notifications.BOOKING_CREATED, _event_payload(booking))
        return ServiceResult.ok(self._flagged(booking), message="Booking created successfully")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def update_status(
        self,
        booking_id: UUID,
        new_status: str,
        acting_role=ActingRole.admin,
        notes: Optional[str] = None,
    ) -> ServiceResult[Booking]:
        if new_status not in BookingStatus.__members__:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "INVALID_STATUS",
                f"Unknown status '{new_status}'",
                allowed=list(BookingStatus.__members__),
            )

        booking = self._load(booking_id)
        if not booking:
            return self._not_found()

        if new_status not in ALLOWED_TRANSITIONS.get(booking.status, set()):
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "INVALID_TRANSITION",
                f"Cannot change status from {booking.status} to {new_status}",
                current_status=booking.status,
                allowed=sorted(ALLOWED_TRANSITIONS.get(booking.status, set())),
            )

        now = self.clock()
        booking.status = new_status
        if new_status == BookingStatus.cancelled.value:
            booking.cancelled_at = now
            booking.cancelled_by = _role_value(acting_role)
            booking.cancellation_reason = notes
            booking.refund_eligible = booking.payment_status == PaymentStatus.completed.value
        elif new_status == BookingStatus.completed.value:
            booking.completed_at = now
        if notes:
            booking.admin_notes = notes
        self.db.commit()
        self.db.refresh(booking)

        logger.info("Booking %s moved to %s by %s", booking.order_number, new_status, _role_value(acting_role))
        if new_status == BookingStatus.cancelled.value:
            dispatch(self.notifier, notifications.BOOKING_CANCELLED, _event_payload(booking, reason=notes))
        return ServiceResult.ok(self._flagged(booking), message=f"Booking status updated to {new_status}")

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel(
        self,
        booking_id: UUID,
        reason: Optional[str] = None,
        acting_role=ActingRole.customer,
        user_id: Optional[UUID] = None,
    ) -> ServiceResult[Booking]:
        booking = self._load(booking_id, user_id)
        if not booking:
            return self._not_found()

        now = self.clock()
        window = self.cancellation_window()
        hours_left = booking.hours_until(now)

        if booking.is_terminal:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "CANNOT_CANCEL",
                f"Booking is already {booking.status} and cannot be cancelled",
                status=booking.status,
                **self._timing_details(window, hours_left),
            )
        if not booking.is_cancellable(now, window):
            if hours_left > 0:
                message = (
                    f"Cancellation is only allowed more than {window:g} hours before the booking. "
                    f"Please contact {settings.SUPPORT_EMAIL} for help."
                )
            else:
                message = "This booking time has already passed and cannot be cancelled"
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "CANNOT_CANCEL",
                message,
                **self._timing_details(window, hours_left),
            )

        booking.status = BookingStatus.cancelled.value
        booking.cancelled_at = now
        booking.cancelled_by = _role_value(acting_role)
        booking.cancellation_reason = reason
        booking.refund_eligible = booking.payment_status == PaymentStatus.completed.value
        self.db.commit()
        self.db.refresh(booking)

        logger.info("Booking %s cancelled by %s", booking.order_number, booking.cancelled_by)
        dispatch(
            self.notifier,
            notifications.BOOKING_CANCELLED,
            _event_payload(booking, reason=reason, refund_eligible=booking.refund_eligible),
        )
        return ServiceResult.ok(
            self._flagged(booking),
            message="Booking cancelled successfully",
            refund_eligible=booking.refund_eligible,
        )

    # ------------------------------------------------------------------
    # Reschedule
    # ------------------------------------------------------------------

    def reschedule(
        self,
        booking_id: UUID,
        new_date,
        new_slot: str,
        new_payment_method: Optional[str] = None,
        reason: Optional[str] = None,
        acting_role=ActingRole.customer,
        user_id: Optional[UUID] = None,
    ) -> ServiceResult[Booking]:
        booking = self._load(booking_id, user_id)
        if not booking:
            return self._not_found()

        now = self.clock()
        window = self.reschedule_window()
        max_count = self.max_reschedules()
        hours_left = booking.hours_until(now)

        if booking.is_terminal:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "CANNOT_RESCHEDULE",
                f"Booking is already {booking.status} and cannot be rescheduled",
                status=booking.status,
            )
        if (booking.reschedule_count or 0) >= max_count:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "MAX_RESCHEDULES_REACHED",
                f"This booking has already been rescheduled {booking.reschedule_count} times",
                max_reschedules=max_count,
                support_email=settings.SUPPORT_EMAIL,
                can_contact=True,
            )
        if hours_left <= window:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "TOO_CLOSE_TO_BOOKING",
                f"Rescheduling is only allowed more than {window:g} hours before the booking",
                **self._timing_details(window, hours_left),
            )

        if new_date is None or not new_slot or not SLOT_LABEL_PATTERN.match(new_slot):
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "INVALID_DATE", "New date and slot must be a valid date and 'HH:MM AM/PM' time"
            )
        payment_method = _enum_value(PaymentMethod, new_payment_method)
        if new_payment_method and payment_method is None:
            return _invalid_choice("INVALID_PAYMENT_METHOD", "payment method", new_payment_method, PaymentMethod)
        new_at = combine_date_and_slot(new_date, new_slot)
        if new_at <= now:
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_DATE", "New booking time cannot be in the past")
        if new_at < now + timedelta(hours=window):
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "INVALID_DATE",
                f"New booking time must be at least {window:g} hours from now",
                window_hours=window,
            )

        new_day = normalize_date(new_date)
        clash = (
            self.db.query(Booking.id)
            .filter(
                Booking.id != booking.id,
                Booking.booking_date == new_day,
                Booking.booking_slot == new_slot,
                Booking.status.in_(ACTIVE_STATUSES),
            )
            .first()
        )
        if clash:
            return ServiceResult.fail(
                ErrorKind.CONFLICT, "SLOT_UNAVAILABLE", "The selected time slot is already booked"
            )

        if not booking.original_date:
            booking.original_date = booking.booking_date
            booking.original_slot = booking.booking_slot
        previous = {"date": booking.booking_date.isoformat(), "slot": booking.booking_slot}
        booking.booking_date = new_day
        booking.booking_slot = new_slot
        if payment_method and payment_method != booking.payment_method:
            booking.payment_method = payment_method
        booking.reschedule_count = (booking.reschedule_count or 0) + 1
        booking.rescheduled_at = now
        booking.rescheduled_by = _role_value(acting_role)
        booking.reschedule_reason = reason
        self.db.commit()
        self.db.refresh(booking)

        remaining = max(max_count - booking.reschedule_count, 0)
        logger.info(
            "Booking %s rescheduled to %s %s (%d left)",
            booking.order_number, new_day, new_slot, remaining,
        )
        dispatch(
            self.notifier,
            notifications.BOOKING_RESCHEDULED,
            _event_payload(booking, previous=previous, reason=reason),
        )
        return ServiceResult.ok(
            self._flagged(booking),
            message="Booking rescheduled successfully",
            remaining_reschedules=remaining,
        )

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def complete_payment(
        self,
        booking_id: UUID,
        method: str,
        gateway_data: Optional[Dict[str, Any]] = None,
        user_id: Optional[UUID] = None,
    ) -> ServiceResult[Booking]:
        payment_method = _enum_value(PaymentMethod, method, PaymentMethod.online.value)
        if payment_method is None:
            return _invalid_choice("INVALID_PAYMENT_METHOD", "payment method", method, PaymentMethod)

        booking = self._load(booking_id, user_id)
        if not booking:
            return self._not_found()
        if booking.payment_status == PaymentStatus.completed.value:
            return ServiceResult.fail(ErrorKind.CONFLICT, "ALREADY_PAID", "Payment already completed")

        if payment_method == PaymentMethod.cod.value:
            booking.payment_method = PaymentMethod.cod.value
            self.db.commit()
            self.db.refresh(booking)
            logger.info("Booking %s set to cash on delivery", booking.order_number)
            return ServiceResult.ok(self._flagged(booking), message="Cash on delivery selected")

        gateway_data = gateway_data or {}
        order_id = gateway_data.get("gateway_order_id")
        payment_id = gateway_data.get("gateway_payment_id")
        signature = gateway_data.get("gateway_signature")
        if not order_id or not payment_id or not signature:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "INVALID_PAYMENT_DATA",
                "gateway_order_id, gateway_payment_id and gateway_signature are required",
            )
        if not self.gateway.verify_signature(order_id, payment_id, signature):
            return ServiceResult.fail(
                ErrorKind.DEPENDENCY_FAILURE, "INVALID_SIGNATURE", "Payment signature verification failed"
            )

        booking.payment_status = PaymentStatus.completed.value
        booking.payment_method = payment_method
        booking.gateway_order_id = order_id
        booking.gateway_payment_id = payment_id
        booking.gateway_signature = signature
        booking.paid_at = self.clock()
        if booking.status == BookingStatus.pending.value:
            booking.status = BookingStatus.confirmed.value
        self.db.commit()
        self.db.refresh(booking)

        logger.info("Payment completed for booking %s", booking.order_number)
        dispatch(
            self.notifier,
            notifications.PAYMENT_COMPLETED,
            _event_payload(booking, gateway_payment_id=payment_id),
        )
        return ServiceResult.ok(self._flagged(booking), message="Payment completed successfully")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, booking_id: UUID, user_id: Optional[UUID] = None) -> ServiceResult[Booking]:
        booking = self._load(booking_id, user_id)
        if not booking:
            return self._not_found()
        return ServiceResult.ok(self._flagged(booking))

    def _filtered(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ):
        query = self.db.query(Booking)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        if status:
            query = query.filter(Booking.status == status)
        if payment_status:
            query = query.filter(Booking.payment_status == payment_status)
        if start_date:
            query = query.filter(Booking.booking_date >= start_date)
        if end_date:
            query = query.filter(Booking.booking_date <= end_date)
        return query.order_by(Booking.booking_date.desc(), Booking.created_at.desc())

    def list_for_user(
        self,
        user_id: UUID,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        service: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        query = self._filtered(user_id, status, None, start_date, end_date)
        if service:
            return self._flagged_page(
                _paginate_list([b for b in query.all() if _has_service(b, service)], page, limit)
            )
        return self._flagged_page(_paginate(query, page, limit))

    def list_all(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        return self._flagged_page(
            _paginate(self._filtered(user_id, status, payment_status, start_date, end_date), page, limit)
        )

    def stats(self, user_id: UUID) -> Dict[str, Any]:
        rows = (
            self.db.query(Booking.status, func.count(Booking.id))
            .filter(Booking.user_id == user_id)
            .group_by(Booking.status)
            .all()
        )
        by_status = {s.value: 0 for s in BookingStatus}
        by_status.update({status: count for status, count in rows})

        spent = (
            self.db.query(func.coalesce(func.sum(Booking.total_amount), 0))
            .filter(
                Booking.user_id == user_id,
                Booking.payment_status == PaymentStatus.completed.value,
            )
            .scalar()
        )
        return {
            "total_bookings": sum(by_status.values()),
            "by_status": by_status,
            "total_spent": float(spent or 0),
            "upcoming": len(self.upcoming(user_id, limit=MAX_PAGE_SIZE)),
        }

    def upcoming(self, user_id: UUID, limit: int = 5) -> List[Booking]:
        now = self.clock()
        candidates = (
            self.db.query(Booking)
            .filter(
                Booking.user_id == user_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.booking_date >= now.date(),
            )
            .order_by(Booking.booking_date.asc())
            .all()
        )
        upcoming = sorted(
            (b for b in candidates if b.is_upcoming(now)),
            key=lambda b: combine_date_and_slot(b.booking_date, b.booking_slot),
        )
        return self._with_flags(upcoming[:limit])

    def search(
        self,
        user_id: UUID,
        q: str,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        term = (q or "").strip().lower()
        bookings = self._filtered(user_id, status).all()
        if term:
            bookings = [
                b for b in bookings
                if term in b.order_number.lower() or _has_service(b, term)
            ]
        return self._flagged_page(_paginate_list(bookings, page, limit))

    def analytics(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        bookings = self._filtered(start_date=start_date, end_date=end_date).all()

        by_status = Counter(b.status for b in bookings)
        by_payment = Counter(b.payment_status for b in bookings)
        paid = [b for b in bookings if b.payment_status == PaymentStatus.completed.value]
        revenue = sum((Decimal(b.total_amount) for b in paid), Decimal("0"))

        services = Counter()
        for b in bookings:
            for s in b.services or []:
                services[s.get("name", "unknown")] += int(s.get("quantity", 1))

        total = len(bookings)
        cancelled = by_status.get(BookingStatus.cancelled.value, 0)
        return {
            "total_bookings": total,
            "by_status": {s.value: by_status.get(s.value, 0) for s in BookingStatus},
            "by_payment_status": dict(by_payment),
            "total_revenue": float(revenue),
            "average_order_value": float(_money(revenue / len(paid))) if paid else 0.0,
            "cancellation_rate": f"{(cancelled / total * 100) if total else 0:.2f}%",
            "total_reschedules": sum(b.reschedule_count or 0 for b in bookings),
            "popular_services": [
                {"name": name, "count": count} for name, count in services.most_common(5)
            ],
            "date_range": {
                "start": start_date.isoformat() if start_date else None,
                "end": end_date.isoformat() if end_date else None,
            },
        }
