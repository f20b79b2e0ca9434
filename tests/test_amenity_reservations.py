import pytest

from app.hoa.db import session_scope
from app.hoa.models import SystemLog
from app.hoa.modules.amenity_reservations.models import AmenityReservation
from app.hoa.modules.amenity_reservations.service import compute_fee, validate_reservation_payload


def _payload(**overrides):
    payload = {
        "user_type": "RESIDENT",
        "full_name": "Maria Santos",
        "amenity": "COURT",
        "date": "2025-06-14",
        "start_time": "08:00",
        "end_time": "10:30",
        "number_of_guests": 10,
        "payment_method": "CASH",
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize(
    "amenity, start, end, fee",
    [
        ("COURT", "08:00", "10:30", 250.0),
        ("gazebo", "09:00", "17:00", 60.0),
        ("PARKING_AREA", "06:00", "20:00", 1000.0),
        ("PARKING_AREA", "06:00", "22:00", 800.0),
    ],
)
def test_compute_fee(amenity, start, end, fee):
    assert compute_fee(amenity, start, end) == fee


def test_validation_errors():
    errors = validate_reservation_payload(
        _payload(amenity="POOL", start_time="10:00", end_time="09:00", number_of_guests=0, payment_method="")
    )
    assert "Amenity must be one of: COURT, GAZEBO, PARKING_AREA" in errors
    assert "End time must be after start time." in errors
    assert "Number of guests is required." in errors
    assert "Payment method is required." in errors
    assert validate_reservation_payload(_payload(date="14/06/2025")) == ["Date must be YYYY-MM-DD."]


def test_create_computes_fee_server_side(client, login, app):
    login("ACCOUNTING")
    r = client.post("/api/amenity-reservations", json=_payload(amount_to_pay=1))
    assert r.status_code == 201, r.json
    assert r.json["amount_to_pay"] == 250.0
    assert r.json["date"] == "2025-06-14"
    assert r.json["status"] == "PENDING"

    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.module == "AMENITY_RESERVATIONS").one()
        assert log.description == "created Amenity Reservation (Maria Santos - COURT) - 08:00 - 10:30 on 2025-06-14"


def test_walk_in_is_approved_and_paid(client, login):
    login("SUPERADMIN")
    r = client.post("/api/amenity-reservations/walk-in", json=_payload(amenity="GAZEBO", receipt_url="x"))
    assert r.status_code == 201
    assert r.json["status"] == "APPROVED"
    assert r.json["payment_status"] == "PAID"
    assert r.json["amount_paid"] == 60.0
    assert r.json["receipt_url"] is None


def test_calendar_excludes_cancelled_and_archived(client, login):
    login("ACCOUNTING")
    keep = client.post("/api/amenity-reservations", json=_payload()).json
    cancelled = client.post("/api/amenity-reservations", json=_payload(date="2025-06-15")).json
    archived = client.post("/api/amenity-reservations", json=_payload(date="2025-06-16", amenity="GAZEBO")).json
    client.post("/api/amenity-reservations", json=_payload(date="2025-07-01"))

    client.post(f"/api/amenity-reservations/{cancelled['id']}/status", json={"status": "CANCELLED"})
    client.post(f"/api/amenity-reservations/{archived['id']}/archive", json={"is_archived": True})

    r = client.get("/api/amenity-reservations/calendar?start_date=2025-06-01&end_date=2025-06-30")
    assert [x["id"] for x in r.json["data"]] == [keep["id"]]

    r = client.get("/api/amenity-reservations/calendar?start_date=2025-06-01&end_date=2025-06-30&amenity=GAZEBO")
    assert r.json["data"] == []

    assert client.get("/api/amenity-reservations/calendar?start_date=2025-06-01").status_code == 400


def test_status_and_payment_status(client, login, app):
    login("ACCOUNTING")
    created = client.post("/api/amenity-reservations", json=_payload()).json

    r = client.post(f"/api/amenity-reservations/{created['id']}/status", json={"status": "maybe"})
    assert r.status_code == 400
    assert r.json["message"].startswith("Status must be one of")

    r = client.post(f"/api/amenity-reservations/{created['id']}/status", json={"status": "approved"})
    assert r.json["status"] == "APPROVED"

    r = client.post(
        f"/api/amenity-reservations/{created['id']}/payment-status", json={"payment_status": "PAID", "amount_paid": 250}
    )
    assert r.status_code == 200
    assert r.json["payment_status"] == "PAID"
    assert r.json["amount_paid"] == 250.0

    with session_scope(app) as s:
        status_log = s.query(SystemLog).filter(SystemLog.action == "STATUS_CHANGE").one()
        assert status_log.log_metadata == {"old_status": "PENDING", "new_status": "APPROVED"}


def test_edit_and_delete(client, login, app):
    login("ACCOUNTING")
    created = client.post("/api/amenity-reservations", json=_payload()).json

    r = client.post(f"/api/amenity-reservations/{created['id']}/edit", json=_payload(end_time="12:00"))
    assert r.status_code == 200
    assert r.json["amount_to_pay"] == 400.0

    r = client.post(f"/api/amenity-reservations/{created['id']}/delete", json={})
    assert r.status_code == 200
    assert r.json["id"] == created["id"]
    assert client.get(f"/api/amenity-reservations/{created['id']}").status_code == 404
    with session_scope(app) as s:
        assert s.query(AmenityReservation).count() == 0


def test_admin_cannot_manage_reservations(client, login):
    login("ADMIN")
    assert client.get("/api/amenity-reservations").status_code == 403
    assert client.post("/api/amenity-reservations", json=_payload()).status_code == 403


def test_unknown_user_is_rejected_without_writing(client, login, app):
    login("ACCOUNTING")
    r = client.post("/api/amenity-reservations", json=_payload(user_id="999999"))
    assert r.status_code == 400
    assert r.json["message"] == "User not found."
    with session_scope(app) as s:
        assert s.query(AmenityReservation).count() == 0
        assert s.query(SystemLog).filter(SystemLog.module == "AMENITY_RESERVATIONS").count() == 0


def test_non_string_fields_are_validation_errors():
    errors = validate_reservation_payload(
        _payload(user_type=1, full_name=["x"], amenity={"a": 1}, start_time=8, amount_paid="inf")
    )
    assert "User type must be one of: RESIDENT, TENANT, VISITOR" in errors
    assert "Amenity must be one of: COURT, GAZEBO, PARKING_AREA" in errors
    assert "Times must be HH:MM." in errors
    assert "Amount paid must be a number." in errors
