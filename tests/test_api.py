import pytest

from app.core.security import create_access_token
from app.services import notifications
from app.services.payment_gateway import compute_payment_signature

API = "/api/v1"
NEXT_WEEK = "2026-03-09"

BOOKING = {
    "services": [{"name": "Bridal Makeup", "price": "4500", "quantity": 1, "duration": 120}],
    "booking_date": NEXT_WEEK,
    "booking_slot": "10:00 AM - 12:00 PM",
    "address": {"line1": "4 Residency Road", "city": "Bengaluru", "pincode": "560025"},
}


@pytest.fixture
def seeded(client, admin_headers):
    response = client.post(f"{API}/admin/booking-configs/seed", headers=admin_headers)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def booking(client, customer_headers, seeded):
    response = client.post(f"{API}/bookings", json=BOOKING, headers=customer_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_root(client):
    assert client.get("/").status_code == 200


def test_requires_token(client):
    assert client.get(f"{API}/bookings").status_code == 401


def test_admin_routes_reject_customers(client, customer_headers):
    response = client.get(f"{API}/admin/daily-slots/statistics", headers=customer_headers)
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Working days & slots
# ---------------------------------------------------------------------------


def test_working_day_upsert_status_codes(client, admin_headers):
    payload = {"day_of_week": 1, "is_working": True, "start_time": "09:00", "end_time": "13:00"}

    created = client.post(f"{API}/admin/working-days", json=payload, headers=admin_headers)
    updated = client.post(f"{API}/admin/working-days", json={**payload, "end_time": "14:00"}, headers=admin_headers)

    assert created.status_code == 201
    assert updated.status_code == 200
    assert updated.json()["end_time"] == "14:00"


def test_working_day_validation_error_shape(client, admin_headers):
    payload = {"day_of_week": 1, "is_working": True, "start_time": "17:00", "end_time": "09:00"}

    response = client.post(f"{API}/admin/working-days", json=payload, headers=admin_headers)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "INVALID_HOURS"
    assert set(detail) == {"code", "message", "details"}


def test_public_working_day_check(client, weekday_schedule):
    monday = client.get(f"{API}/working-days/check/2026-03-02").json()
    sunday = client.get(f"{API}/working-days/check/2026-03-01").json()

    assert monday["is_working_day"] is True
    assert sunday["is_working_day"] is False


def test_daily_slot_crud_and_duplicate(client, admin_headers, admin):
    payload = {
        "date": "2026-03-10",
        "slots": [
            {"start_time": "09:00", "end_time": "10:00", "max_bookings": 1},
            {"start_time": "10:00", "end_time": "11:00"},
        ],
    }

    created = client.post(f"{API}/admin/daily-slots", json=payload, headers=admin_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["created_by"] == str(admin.id)
    assert body["total_slots"] == 2

    duplicate = client.post(f"{API}/admin/daily-slots", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "DUPLICATE_DATE"

    slot_id = body["slots"][0]["id"]
    booked = client.post(f"{API}/admin/daily-slots/2026-03-10/slots/{slot_id}/book", headers=admin_headers)
    assert booked.json()["remaining"] == 0

    full = client.post(f"{API}/admin/daily-slots/2026-03-10/slots/{slot_id}/book", headers=admin_headers)
    assert full.status_code == 409
    assert full.json()["detail"]["code"] == "FULL"

    available = client.get(f"{API}/slots/2026-03-10/available").json()
    assert available["total_slots"] == 2
    assert [s["start_time"] for s in available["available_slots"]] == ["10:00"]


def test_available_slots_for_unknown_date(client):
    assert client.get(f"{API}/slots/2026-04-01/available").status_code == 404


def test_generate_for_date_endpoint(client, admin_headers, weekday_schedule):
    created = client.post(f"{API}/admin/slot-automation/generate/2026-03-03", headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["created_by"] == "system"

    sunday = client.post(f"{API}/admin/slot-automation/generate/2026-03-08", headers=admin_headers)
    assert sunday.status_code == 400
    assert sunday.json()["detail"]["code"] == "NON_WORKING_DAY"


def test_run_daily_endpoint(client, admin_headers, weekday_schedule):
    summary = client.post(f"{API}/admin/slot-automation/run-daily", headers=admin_headers).json()
    assert summary["generated"] == 27
    assert summary["date_range"] == {"start": "2026-03-02", "end": "2026-04-01"}


# ---------------------------------------------------------------------------
# Booking configs
# ---------------------------------------------------------------------------


def test_public_config_values(client, seeded):
    values = client.get(f"{API}/booking-configs").json()
    keys = {v["config_key"] for v in values}
    assert "MINIMUM_ORDER_VALUE" in keys

    mov = client.get(f"{API}/booking-configs/minimum_order_value")
    assert mov.status_code == 200
    assert mov.json()["value"] == 999


def test_admin_config_update_and_audit(client, admin_headers, seeded):
    response = client.patch(
        f"{API}/admin/booking-configs/MINIMUM_ORDER_VALUE",
        json={"value": 1299, "reason": "Season pricing"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["value"] == 1299

    audit = client.get(f"{API}/admin/booking-configs/MINIMUM_ORDER_VALUE/audit", headers=admin_headers).json()
    assert audit[0]["new_value"] == 1299
    assert audit[0]["reason"] == "Season pricing"


def test_critical_config_delete_is_refused(client, admin_headers, seeded):
    response = client.delete(f"{API}/admin/booking-configs/CANCELLATION_WINDOW_HOURS", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "CRITICAL_CONFIG"


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


def test_create_booking(booking, notifier):
    assert booking["status"] == "pending"
    assert booking["total_amount"] == "5310.00"
    assert len(notifier.of_type(notifications.BOOKING_CREATED)) == 1


def test_booking_responses_carry_action_flags(client, customer_headers, booking):
    same_day = {**BOOKING, "booking_date": "2026-03-02", "booking_slot": "10:00 AM - 12:00 PM"}
    soon = client.post(f"{API}/bookings", json=same_day, headers=customer_headers).json()

    assert booking["can_be_cancelled"] is True
    assert booking["can_be_rescheduled"] is True
    assert soon["can_be_cancelled"] is False
    assert soon["can_be_rescheduled"] is False

    fetched = client.get(f"{API}/bookings/{booking['id']}", headers=customer_headers).json()
    assert fetched["can_be_cancelled"] is True

    listing = client.get(f"{API}/bookings", headers=customer_headers).json()
    flags = {b["id"]: b["can_be_cancelled"] for b in listing["data"]}
    assert flags == {booking["id"]: True, soon["id"]: False}


def test_admin_listing_carries_action_flags(client, admin_headers, booking):
    listing = client.get(f"{API}/admin/bookings", headers=admin_headers).json()
    assert listing["data"][0]["can_be_rescheduled"] is True


def test_create_booking_rounds_tax_to_rupees(client, customer_headers, seeded):
    odd = {**BOOKING, "services": [{"name": "Hair Spa", "price": "999"}]}

    body = client.post(f"{API}/bookings", json=odd, headers=customer_headers).json()

    assert body["tax_amount"] == "180.00"
    assert body["total_amount"] == "1179.00"


@pytest.mark.parametrize(
    "override",
    [{"payment_method": "bitcoin"}, {"source": "kiosk"}, {"booking_slot": "morning"}],
)
def test_create_booking_rejects_bad_choices(client, customer_headers, seeded, override):
    response = client.post(f"{API}/bookings", json={**BOOKING, **override}, headers=customer_headers)
    assert response.status_code == 422


def test_payment_rejects_unknown_method(client, customer_headers, booking, gateway):
    signature = compute_payment_signature(gateway.key_secret, "order_1", "pay_1")
    response = client.post(
        f"{API}/bookings/{booking['id']}/payment",
        json={
            "payment_method": "bitcoin",
            "gateway_order_id": "order_1",
            "gateway_payment_id": "pay_1",
            "gateway_signature": signature,
        },
        headers=customer_headers,
    )

    assert response.status_code == 422
    assert client.get(f"{API}/bookings/{booking['id']}", headers=customer_headers).json()["payment_status"] == "pending"


def test_create_booking_below_minimum(client, customer_headers, seeded):
    cheap = {**BOOKING, "services": [{"name": "Manicure", "price": "300"}]}

    response = client.post(f"{API}/bookings", json=cheap, headers=customer_headers)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "MINIMUM_ORDER_VALUE_NOT_MET"
    assert detail["details"]["shortfall"] == 699


def test_customer_cancel_and_list(client, customer_headers, booking):
    cancelled = client.patch(
        f"{API}/bookings/{booking['id']}/cancel", json={"reason": "Plans changed"}, headers=customer_headers
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["refund_eligible"] is False
    assert cancelled.json()["booking"]["status"] == "cancelled"

    again = client.patch(f"{API}/bookings/{booking['id']}/cancel", json={}, headers=customer_headers)
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "CANNOT_CANCEL"

    listing = client.get(f"{API}/bookings", headers=customer_headers).json()
    assert listing["total"] == 1
    assert listing["data"][0]["cancellation_reason"] == "Plans changed"


def test_customer_reschedule(client, customer_headers, booking):
    response = client.patch(
        f"{API}/bookings/{booking['id']}/reschedule",
        json={"new_date": "2026-03-11", "new_slot": "3:00 PM"},
        headers=customer_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["remaining_reschedules"] == 2
    assert body["booking"]["booking_date"] == "2026-03-11"


def test_payment_flow(client, customer_headers, booking, gateway):
    signature = compute_payment_signature(gateway.key_secret, "order_77", "pay_77")
    paid = client.post(
        f"{API}/bookings/{booking['id']}/payment",
        json={"gateway_order_id": "order_77", "gateway_payment_id": "pay_77", "gateway_signature": signature},
        headers=customer_headers,
    )
    assert paid.status_code == 200
    assert paid.json()["booking"]["payment_status"] == "completed"

    twice = client.post(
        f"{API}/bookings/{booking['id']}/payment",
        json={"gateway_order_id": "order_77", "gateway_payment_id": "pay_77", "gateway_signature": signature},
        headers=customer_headers,
    )
    assert twice.status_code == 409


def test_other_customer_cannot_see_booking(client, db, booking):
    from app.models.user import User

    stranger = User(email="stranger@example.com", full_name="Stranger", role="customer")
    db.add(stranger)
    db.commit()

    headers = {"Authorization": f"Bearer {create_access_token(str(stranger.id))}"}
    response = client.get(f"{API}/bookings/{booking['id']}", headers=headers)
    assert response.status_code == 404


def test_admin_status_and_analytics(client, admin_headers, booking):
    confirmed = client.patch(
        f"{API}/admin/bookings/{booking['id']}/status", json={"status": "confirmed"}, headers=admin_headers
    )
    assert confirmed.status_code == 200

    skipped = client.patch(
        f"{API}/admin/bookings/{booking['id']}/status", json={"status": "pending"}, headers=admin_headers
    )
    assert skipped.status_code == 400
    assert skipped.json()["detail"]["code"] == "INVALID_TRANSITION"

    analytics = client.get(f"{API}/admin/bookings/analytics", headers=admin_headers).json()
    assert analytics["total_bookings"] == 1
    assert analytics["by_status"]["confirmed"] == 1
