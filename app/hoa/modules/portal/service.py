"""
Resident self-service.

Every operation here is scoped to the caller's own household: the household
head record linked to the signed-in account (by user id, or by the account's
email for heads created before they had an account), and the residents that
share its block / lot / street.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from werkzeug.exceptions import BadRequest, NotFound

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.modules.maps.service import occupy_lot
from app.hoa.modules.monthly_dues.service import month_name
from app.hoa.modules.residents.service import apply_resident_payload, ensure_single_head, validate_resident_payload
from app.hoa.utils import clean_str

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hoa.models import User
    from app.hoa.modules.residents.models import Resident


NO_HEAD_MESSAGE = "Household head record not found. Please complete your profile first."
AMENITY_LABELS = {"COURT": "Court", "GAZEBO": "Gazebo", "PARKING_AREA": "Parking Area"}


def _owned_by(user: "User"):
    from app.hoa.modules.residents.models import Resident

    return or_(Resident.user_id == user.id, Resident.email_address == (user.email or "").lower())


def find_my_head(s: "Session", user: "User") -> "Resident | None":
    from app.hoa.modules.residents.models import Resident

    return (
        s.query(Resident)
        .filter(Resident.is_head.is_(True), _owned_by(user))
        .order_by(Resident.id.asc())
        .first()
    )


def my_head_or_404(s: "Session", user: "User") -> "Resident":
    head = find_my_head(s, user)
    if head is None:
        raise NotFound(description=NO_HEAD_MESSAGE)
    return head


def household_members(s: "Session", head: "Resident") -> list["Resident"]:
    """Active residents sharing the head's address, head first then oldest record first."""
    from app.hoa.modules.residents.models import Resident

    if not head.block_no:
        return [] if head.is_archived else [head]
    return (
        s.query(Resident)
        .filter(
            Resident.is_archived.is_(False),
            Resident.block_no == head.block_no,
            Resident.lot_no.is_(None) if head.lot_no is None else Resident.lot_no == head.lot_no,
            Resident.street == head.street,
        )
        .order_by(Resident.is_head.desc(), Resident.created_at.asc(), Resident.id.asc())
        .all()
    )


def validate_profile_payload(payload: dict) -> list[str]:
    errors = validate_resident_payload(payload)
    if not str(payload.get("block_no") or "").strip():
        errors.append("Block is required.")
    if not str(payload.get("street") or "").strip():
        errors.append("Street is required.")
    return errors


def complete_profile(s: "Session", user: "User", payload: dict) -> "Resident":
    """Create or fill in the caller's household-head record and occupy its lot."""
    from app.hoa.modules.residents.models import Resident

    existing = (
        s.query(Resident)
        .filter(_owned_by(user))
        .order_by(Resident.is_head.desc(), Resident.id.asc())
        .first()
    )
    now = datetime.utcnow()
    resident = existing or Resident(created_at=now)
    apply_resident_payload(resident, {**payload, "is_head": True, "email_address": user.email})
    ensure_single_head(s, resident, exclude_id=resident.id)
    occupy_lot(s, resident.block_no, resident.lot_no, resident.street)  # type: ignore[arg-type]
    resident.user_id = user.id
    resident.updated_at = now
    if existing is None:
        s.add(resident)
    s.commit()

    action = LogAction.UPDATE if existing else LogAction.CREATE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.RESIDENTS,
        entity_id=resident.id,
        entity_type="Resident",
        description=create_log_description(action, "Resident", resident.full_name, "Profile completed"),
        metadata={"self_service": True},
    )
    return resident


def add_household_member(s: "Session", head: "Resident", payload: dict, user: "User") -> "Resident":
    """Add a non-head resident at the head's address."""
    from app.hoa.modules.residents.models import Resident

    if not head.block_no:
        raise NotFound(description=NO_HEAD_MESSAGE)
    now = datetime.utcnow()
    member = Resident(created_at=now, updated_at=now)
    apply_resident_payload(member, {**payload, "is_head": False})
    member.block_no = head.block_no
    member.lot_no = head.lot_no
    member.street = head.street
    s.add(member)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.RESIDENTS,
        entity_id=member.id,
        entity_type="Resident",
        description=create_log_description(
            LogAction.CREATE, "Resident", member.full_name, f"Household member of {head.full_name}"
        ),
        metadata={"head_id": head.id, "self_service": True},
    )
    return member


def owned_resident_id(s: "Session", head: "Resident", payload: dict) -> int:
    """Resident a vehicle is registered to: a member of the caller's household (the head by default)."""
    raw = clean_str(payload.get("resident_id"))
    if not raw:
        return head.id
    member_ids = {m.id for m in household_members(s, head)}
    if not raw.isdigit() or int(raw) not in member_ids:
        raise BadRequest(description="Vehicle owner must be a member of your household.")
    return int(raw)


def my_transactions(s: "Session", user: "User") -> list[dict[str, Any]]:
    """Dues payments, amenity reservations and vehicle registrations of the caller, newest first."""
    from app.hoa.modules.amenity_reservations.models import AmenityReservation
    from app.hoa.modules.monthly_dues.models import PaymentTransaction
    from app.hoa.modules.vehicle_registrations.models import VehicleRegistration

    head = find_my_head(s, user)
    items: list[dict[str, Any]] = []

    if head is not None:
        for t in s.query(PaymentTransaction).filter(PaymentTransaction.resident_id == head.id):
            due = t.monthly_due
            items.append(
                {
                    "id": t.id,
                    "type": "MONTHLY_DUE",
                    "date": t.created_at,
                    "amount": t.amount,
                    "status": t.status or "PENDING",
                    "description": f"Monthly Due Payment - {month_name(due.month)} {due.year}",
                    "metadata": {
                        "month": due.month,
                        "year": due.year,
                        "payment_method": t.payment_method,
                        "proof_of_payment": t.proof_of_payment,
                        "notes": t.notes,
                    },
                }
            )

    reservations = s.query(AmenityReservation).filter(
        AmenityReservation.user_id == user.id, AmenityReservation.is_archived.is_(False)
    )
    for r in reservations:
        items.append(
            {
                "id": r.id,
                "type": "AMENITY_RESERVATION",
                "date": r.created_at,
                "amount": r.amount_paid or r.amount_to_pay,
                "status": r.status,
                "description": f"Amenity Reservation - {AMENITY_LABELS.get(r.amenity, r.amenity)}",
                "metadata": {
                    "amenity": r.amenity,
                    "date": r.reservation_date.isoformat(),
                    "start_time": r.start_time,
                    "end_time": r.end_time,
                    "payment_status": r.payment_status,
                },
            }
        )

    if head is not None:
        member_ids = [m.id for m in household_members(s, head)]
        vehicles = (
            s.query(VehicleRegistration).filter(
                VehicleRegistration.resident_id.in_(member_ids), VehicleRegistration.is_archived.is_(False)
            )
            if member_ids
            else []
        )
        for v in vehicles:
            items.append(
                {
                    "id": v.id,
                    "type": "VEHICLE_REGISTRATION",
                    "date": v.created_at,
                    "amount": None,
                    "status": "REGISTERED",
                    "description": f"Vehicle Registration - {v.label}",
                    "metadata": {"plate_number": v.plate_number, "vehicle_type": v.vehicle_type, "resident_id": v.resident_id},
                }
            )

    items.sort(key=lambda i: i["date"], reverse=True)
    for item in items:
        item["date"] = item["date"].isoformat()
    return items
