from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.amenity_reservations.models import AmenityReservation
from app.hoa.modules.amenity_reservations.service import (
    AMENITIES,
    create_reservation,
    create_walk_in,
    delete_reservation,
    reservations_in_range,
    set_reservation_archived,
    update_payment_status,
    update_reservation,
    update_reservation_status,
    validate_reservation_payload,
)
from app.hoa.rbac import Feature, require_feature
from app.hoa.utils import json_body, parse_bool, parse_date, serialize, validation_error

bp = Blueprint("amenity_reservations", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(reservation_id: int) -> AmenityReservation:
    r = db_session().get(AmenityReservation, reservation_id)
    if not r:
        abort(404, description="Amenity reservation not found.")
    return r


def _dump(r: AmenityReservation) -> dict:
    out = serialize(r) or {}
    out["date"] = out.pop("reservation_date", None)
    user = r.user
    out["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
    return out


@bp.get("/amenity-reservations")
@require_feature(Feature.TRANSACTIONS)
def reservations_list():
    s = db_session()
    q = s.query(AmenityReservation)
    if not parse_bool(request.args.get("include_archived")):
        q = q.filter(AmenityReservation.is_archived.is_(False))
    rows = q.order_by(AmenityReservation.reservation_date.desc(), AmenityReservation.id.desc()).all()
    return {"data": [_dump(r) for r in rows]}


@bp.get("/amenity-reservations/calendar")
@require_feature(Feature.TRANSACTIONS)
def reservations_calendar():
    try:
        start = parse_date(request.args.get("start_date"))
        end = parse_date(request.args.get("end_date"))
    except ValueError:
        abort(400, description="start_date and end_date must be YYYY-MM-DD.")
    if not start or not end:
        abort(400, description="start_date and end_date are required.")
    amenity = (request.args.get("amenity") or "").strip().upper() or None
    if amenity and amenity not in AMENITIES:
        abort(400, description=f"Amenity must be one of: {', '.join(AMENITIES)}")
    rows = reservations_in_range(db_session(), start, end, amenity)
    return {"data": [_dump(r) for r in rows]}


@bp.get("/amenity-reservations/<int:reservation_id>")
@require_feature(Feature.TRANSACTIONS)
def reservation_detail(reservation_id: int):
    return _dump(_get_or_404(reservation_id))


@bp.post("/amenity-reservations")
@require_feature(Feature.TRANSACTIONS)
def reservations_create():
    payload = json_body()
    errors = validate_reservation_payload(payload)
    if errors:
        return validation_error(errors)
    r = create_reservation(db_session(), payload, _current_user())
    return _dump(r), 201


@bp.post("/amenity-reservations/walk-in")
@require_feature(Feature.TRANSACTIONS)
def reservations_walk_in():
    payload = json_body()
    errors = validate_reservation_payload(payload)
    if errors:
        return validation_error(errors)
    r = create_walk_in(db_session(), payload, _current_user())
    return _dump(r), 201


@bp.post("/amenity-reservations/<int:reservation_id>/edit")
@require_feature(Feature.TRANSACTIONS)
def reservation_edit(reservation_id: int):
    r = _get_or_404(reservation_id)
    payload = json_body()
    errors = validate_reservation_payload(payload)
    if errors:
        return validation_error(errors)
    update_reservation(db_session(), r, payload, _current_user())
    return _dump(r)


@bp.post("/amenity-reservations/<int:reservation_id>/delete")
@require_feature(Feature.TRANSACTIONS)
def reservation_delete(reservation_id: int):
    r = _get_or_404(reservation_id)
    snapshot = delete_reservation(db_session(), r, _current_user())
    snapshot["date"] = snapshot.pop("reservation_date", None)
    return snapshot


@bp.post("/amenity-reservations/<int:reservation_id>/archive")
@require_feature(Feature.TRANSACTIONS)
def reservation_archive(reservation_id: int):
    r = _get_or_404(reservation_id)
    payload = json_body()
    set_reservation_archived(db_session(), r, parse_bool(payload.get("is_archived"), default=True), _current_user())
    return _dump(r)


@bp.post("/amenity-reservations/<int:reservation_id>/status")
@require_feature(Feature.TRANSACTIONS)
def reservation_status(reservation_id: int):
    r = _get_or_404(reservation_id)
    payload = json_body()
    try:
        update_reservation_status(db_session(), r, str(payload.get("status") or ""), _current_user())
    except ValueError as e:
        return validation_error([str(e)])
    return _dump(r)


@bp.post("/amenity-reservations/<int:reservation_id>/payment-status")
@require_feature(Feature.TRANSACTIONS)
def reservation_payment_status(reservation_id: int):
    r = _get_or_404(reservation_id)
    payload = json_body()
    amount_paid = payload.get("amount_paid")
    try:
        update_payment_status(
            db_session(),
            r,
            str(payload.get("payment_status") or ""),
            _current_user(),
            amount_paid=float(amount_paid) if amount_paid not in (None, "") else None,
        )
    except ValueError as e:
        return validation_error([str(e)])
    return _dump(r)
