from __future__ import annotations

import math
from datetime import date, datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import BadRequest

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.utils import clean_str, parse_date, serialize

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hoa.models import User
    from app.hoa.modules.amenity_reservations.models import AmenityReservation


USER_TYPES = ("RESIDENT", "TENANT", "VISITOR")
AMENITIES = ("COURT", "GAZEBO", "PARKING_AREA")
STATUSES = ("PENDING", "APPROVED", "REJECTED", "CANCELLED")
PAYMENT_STATUSES = ("PENDING", "PAID", "REFUNDED")

GAZEBO_FLAT_RATE = 60.0  # per 3-hour block
COURT_HOURLY_RATE = 100.0
PARKING_EVENT_RATE = 1000.0  # up to PARKING_EVENT_MAX_HOURS
PARKING_MONTHLY_RATE = 800.0
PARKING_EVENT_MAX_HOURS = 15


def parse_time(s: str | None) -> datetime | None:
    """Parse HH:MM (or HH:MM:SS) on a fixed reference date."""
    s = str(s or "").strip()
    if not s:
        return None
    fmt = "%H:%M:%S" if s.count(":") == 2 else "%H:%M"
    return datetime.strptime(f"2000-01-01 {s}", f"%Y-%m-%d {fmt}")


def duration_hours(start_time: str, end_time: str) -> float:
    start = parse_time(start_time)
    end = parse_time(end_time)
    if start is None or end is None:
        return 0.0
    return (end - start).total_seconds() / 3600


def compute_fee(amenity: str, start_time: str, end_time: str) -> float:
    hours = duration_hours(start_time, end_time)
    amenity = amenity.upper()
    if amenity == "GAZEBO":
        return GAZEBO_FLAT_RATE
    if amenity == "COURT":
        return round(hours * COURT_HOURLY_RATE, 2)
    if amenity == "PARKING_AREA":
        return PARKING_EVENT_RATE if hours <= PARKING_EVENT_MAX_HOURS else PARKING_MONTHLY_RATE
    return 0.0


def _num(value, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise TypeError("boolean amount")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("amount must be finite")
    return number


def validate_reservation_payload(payload: dict) -> list[str]:
    """Validate amenity reservation payload. Returns list of errors."""
    errors = []
    if str(payload.get("user_type") or "").strip().upper() not in USER_TYPES:
        errors.append(f"User type must be one of: {', '.join(USER_TYPES)}")
    if not str(payload.get("full_name") or "").strip():
        errors.append("Full name is required.")
    if str(payload.get("amenity") or "").strip().upper() not in AMENITIES:
        errors.append(f"Amenity must be one of: {', '.join(AMENITIES)}")
    try:
        if not parse_date(payload.get("date")):
            errors.append("Date is required.")
    except ValueError:
        errors.append("Date must be YYYY-MM-DD.")
    try:
        start = parse_time(payload.get("start_time"))
        end = parse_time(payload.get("end_time"))
        if not start:
            errors.append("Start time is required.")
        if not end:
            errors.append("End time is required.")
        if start and end and end <= start:
            errors.append("End time must be after start time.")
    except ValueError:
        errors.append("Times must be HH:MM.")
    try:
        if int(payload.get("number_of_guests") or 0) < 1:
            errors.append("Number of guests is required.")
    except (TypeError, ValueError):
        errors.append("Number of guests must be a number.")
    if not str(payload.get("payment_method") or "").strip():
        errors.append("Payment method is required.")
    for key in ("amount_to_pay", "amount_paid"):
        try:
            if _num(payload.get(key)) < 0:
                errors.append(f"{key.replace('_', ' ').capitalize()} must not be negative.")
        except (TypeError, ValueError):
            errors.append(f"{key.replace('_', ' ').capitalize()} must be a number.")
    status = str(payload.get("status") or "PENDING").strip().upper()
    if status not in STATUSES:
        errors.append(f"Status must be one of: {', '.join(STATUSES)}")
    payment_status = str(payload.get("payment_status") or "PENDING").strip().upper()
    if payment_status not in PAYMENT_STATUSES:
        errors.append(f"Payment status must be one of: {', '.join(PAYMENT_STATUSES)}")
    user_id = str(payload.get("user_id") or "").strip()
    if user_id and not user_id.isdigit():
        errors.append("User id must be a number.")
    return errors


def _resolve_user_id(s: "Session", payload: dict) -> int | None:
    from app.hoa.models import User

    user_id = clean_str(payload.get("user_id"))
    if not user_id:
        return None
    if s.get(User, int(user_id)) is None:
        raise BadRequest(description="User not found.")
    return int(user_id)


def _apply_payload(s: "Session", r: "AmenityReservation", payload: dict) -> None:
    user_id = _resolve_user_id(s, payload)
    r.user_type = str(payload["user_type"]).strip().upper()
    r.user_id = user_id
    r.full_name = str(payload["full_name"]).strip()
    r.amenity = str(payload["amenity"]).strip().upper()
    r.reservation_date = parse_date(payload.get("date"))  # type: ignore[assignment]
    r.start_time = str(payload["start_time"]).strip()
    r.end_time = str(payload["end_time"]).strip()
    r.number_of_guests = int(payload.get("number_of_guests"))
    r.purpose = clean_str(payload.get("purpose"))
    r.payment_method = str(payload["payment_method"]).strip()
    r.amount_paid = _num(payload.get("amount_paid"))
    r.status = str(payload.get("status") or "PENDING").strip().upper()
    r.payment_status = str(payload.get("payment_status") or "PENDING").strip().upper()
    r.receipt_url = clean_str(payload.get("receipt_url"))


def create_reservation(s: "Session", payload: dict, user: "User") -> "AmenityReservation":
    """Create a reservation; the fee is always computed server-side."""
    from app.hoa.modules.amenity_reservations.models import AmenityReservation

    now = datetime.utcnow()
    r = AmenityReservation(created_at=now, updated_at=now)
    _apply_payload(s, r, payload)
    r.amount_to_pay = compute_fee(r.amenity, r.start_time, r.end_time)
    s.add(r)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=r.id,
        entity_type="AmenityReservation",
        description=create_log_description(
            LogAction.CREATE,
            "Amenity Reservation",
            r.label,
            f"{r.start_time} - {r.end_time} on {r.reservation_date.isoformat()}",
        ),
        metadata={"amenity": r.amenity, "status": r.status, "amount_to_pay": r.amount_to_pay},
    )
    return r


def create_walk_in(s: "Session", payload: dict, user: "User") -> "AmenityReservation":
    """Walk-in: auto-approved and paid in full at the counter."""
    from app.hoa.modules.amenity_reservations.models import AmenityReservation

    now = datetime.utcnow()
    r = AmenityReservation(created_at=now, updated_at=now)
    _apply_payload(s, r, payload)
    fee = compute_fee(r.amenity, r.start_time, r.end_time)
    r.amount_to_pay = fee
    r.amount_paid = fee
    r.status = "APPROVED"
    r.payment_status = "PAID"
    r.receipt_url = None
    s.add(r)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=r.id,
        entity_type="AmenityReservation",
        description=create_log_description(
            LogAction.CREATE, "Walk-in Amenity Reservation", r.label, f"Walk-in payment: {fee:.2f}"
        ),
        metadata={"amenity": r.amenity, "is_walk_in": True, "amount_paid": fee},
    )
    return r


def update_reservation(s: "Session", r: "AmenityReservation", payload: dict, user: "User") -> "AmenityReservation":
    _apply_payload(s, r, payload)
    r.amount_to_pay = _num(payload.get("amount_to_pay"), default=compute_fee(r.amenity, r.start_time, r.end_time))
    r.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=r.id,
        entity_type="AmenityReservation",
        description=create_log_description(LogAction.UPDATE, "Amenity Reservation", r.label),
    )
    return r


def delete_reservation(s: "Session", r: "AmenityReservation", user: "User") -> dict:
    snapshot = serialize(r) or {}
    label = r.label
    s.delete(r)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.DELETE,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=snapshot.get("id"),
        entity_type="AmenityReservation",
        description=create_log_description(LogAction.DELETE, "Amenity Reservation", label),
    )
    return snapshot


def set_reservation_archived(
    s: "Session", r: "AmenityReservation", is_archived: bool, user: "User"
) -> "AmenityReservation":
    r.is_archived = is_archived
    r.updated_at = datetime.utcnow()
    s.commit()

    action = LogAction.ARCHIVE if is_archived else LogAction.RETRIEVE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=r.id,
        entity_type="AmenityReservation",
        description=create_log_description(action, "Amenity Reservation", r.label),
    )
    return r


def update_reservation_status(s: "Session", r: "AmenityReservation", status: str, user: "User") -> "AmenityReservation":
    status = status.strip().upper()
    if status not in STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(STATUSES)}")
    old_status = r.status
    r.status = status
    r.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.STATUS_CHANGE,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=r.id,
        entity_type="AmenityReservation",
        description=create_log_description(LogAction.STATUS_CHANGE, "Amenity Reservation", r.label, f"Status: {status}"),
        metadata={"old_status": old_status, "new_status": status},
    )
    return r


def update_payment_status(
    s: "Session", r: "AmenityReservation", payment_status: str, user: "User", amount_paid: float | None = None
) -> "AmenityReservation":
    payment_status = payment_status.strip().upper()
    if payment_status not in PAYMENT_STATUSES:
        raise ValueError(f"Payment status must be one of: {', '.join(PAYMENT_STATUSES)}")
    r.payment_status = payment_status
    if amount_paid is not None:
        r.amount_paid = float(amount_paid)
    r.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.PAYMENT_UPDATE,
        module=LogModule.AMENITY_RESERVATIONS,
        entity_id=r.id,
        entity_type="AmenityReservation",
        description=create_log_description(
            LogAction.PAYMENT_UPDATE, "Amenity Reservation", r.label, f"Payment status: {payment_status}"
        ),
        metadata={"payment_status": payment_status, "amount_paid": r.amount_paid},
    )
    return r


def reservations_in_range(s: "Session", start: date, end: date, amenity: str | None = None) -> list["AmenityReservation"]:
    """Active (not cancelled, not archived) reservations between start and end inclusive."""
    from app.hoa.modules.amenity_reservations.models import AmenityReservation

    q = s.query(AmenityReservation).filter(
        AmenityReservation.reservation_date >= start,
        AmenityReservation.reservation_date <= end,
        AmenityReservation.status != "CANCELLED",
        AmenityReservation.is_archived.is_(False),
    )
    if amenity:
        q = q.filter(AmenityReservation.amenity == amenity.upper())
    return q.order_by(AmenityReservation.reservation_date.asc(), AmenityReservation.start_time.asc()).all()
