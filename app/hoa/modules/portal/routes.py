from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.amenity_reservations.service import create_reservation, validate_reservation_payload
from app.hoa.modules.monthly_dues.service import year_ledger
from app.hoa.modules.portal.service import (
    add_household_member,
    complete_profile,
    household_members,
    my_head_or_404,
    my_transactions,
    owned_resident_id,
    validate_profile_payload,
)
from app.hoa.modules.residents.service import validate_resident_payload
from app.hoa.modules.vehicle_registrations.service import create_vehicle, validate_vehicle_payload
from app.hoa.rbac import require_roles
from app.hoa.utils import json_body, serialize, validation_error

bp = Blueprint("portal", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/portal/household")
@require_roles()
def my_household():
    head = my_head_or_404(db_session(), _current_user())
    return serialize(head)


@bp.post("/portal/profile/complete")
@require_roles()
def profile_complete():
    payload = json_body()
    errors = validate_profile_payload(payload)
    if errors:
        return validation_error(errors)
    resident = complete_profile(db_session(), _current_user(), payload)
    return serialize(resident)


@bp.get("/portal/household/members")
@require_roles()
def members_list():
    s = db_session()
    head = my_head_or_404(s, _current_user())
    return {"data": [serialize(m) for m in household_members(s, head)]}


@bp.post("/portal/household/members")
@require_roles()
def members_add():
    s = db_session()
    user = _current_user()
    head = my_head_or_404(s, user)
    payload = json_body()
    errors = validate_resident_payload(payload)
    if errors:
        return validation_error(errors)
    member = add_household_member(s, head, payload, user)
    return serialize(member), 201


@bp.get("/portal/transactions")
@require_roles()
def transactions():
    return {"data": my_transactions(db_session(), _current_user())}


@bp.get("/portal/monthly-dues")
@require_roles()
def my_dues():
    raw = (request.args.get("year") or "").strip()
    if raw and not raw.isdigit():
        abort(400, description="year must be an integer.")
    s = db_session()
    head = my_head_or_404(s, _current_user())
    return year_ledger(s, head, int(raw) if raw else None)


@bp.post("/portal/reservations")
@require_roles()
def reservation_book():
    """Residents book for themselves; staff review status and payment afterwards."""
    user = _current_user()
    payload = json_body()
    errors = validate_reservation_payload(payload)
    if errors:
        return validation_error(errors)
    payload.update(user_id=user.id, status="PENDING", payment_status="PENDING")
    r = create_reservation(db_session(), payload, user)
    return serialize(r), 201


@bp.post("/portal/vehicles")
@require_roles()
def vehicle_register():
    s = db_session()
    user = _current_user()
    head = my_head_or_404(s, user)
    payload = json_body()
    errors = validate_vehicle_payload(payload)
    if errors:
        return validation_error(errors)
    payload["resident_id"] = owned_resident_id(s, head, payload)
    vehicle = create_vehicle(s, payload, user)
    return serialize(vehicle), 201
