from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.vehicle_registrations.models import VehicleRegistration
from app.hoa.modules.vehicle_registrations.service import (
    create_vehicle,
    set_vehicle_archived,
    update_vehicle,
    validate_vehicle_payload,
)
from app.hoa.rbac import Feature, require_feature
from app.hoa.utils import json_body, parse_bool, serialize, validation_error

bp = Blueprint("vehicle_registrations", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(vehicle_id: int) -> VehicleRegistration:
    vehicle = db_session().get(VehicleRegistration, vehicle_id)
    if not vehicle:
        abort(404, description="Vehicle registration not found.")
    return vehicle


@bp.get("/vehicle-registrations")
@require_feature(Feature.VEHICLE_REGISTRATIONS)
def vehicles_list():
    s = db_session()
    q = s.query(VehicleRegistration)
    if not parse_bool(request.args.get("include_archived")):
        q = q.filter(VehicleRegistration.is_archived.is_(False))
    vehicles = q.order_by(VehicleRegistration.created_at.desc(), VehicleRegistration.id.desc()).all()
    return {"data": [serialize(v, include=("resident",)) for v in vehicles]}


@bp.get("/vehicle-registrations/<int:vehicle_id>")
@require_feature(Feature.VEHICLE_REGISTRATIONS)
def vehicle_detail(vehicle_id: int):
    return serialize(_get_or_404(vehicle_id), include=("resident",))


@bp.post("/vehicle-registrations")
@require_feature(Feature.VEHICLE_REGISTRATIONS)
def vehicles_create():
    payload = json_body()
    errors = validate_vehicle_payload(payload)
    if errors:
        return validation_error(errors)
    vehicle = create_vehicle(db_session(), payload, _current_user())
    return serialize(vehicle), 201


@bp.post("/vehicle-registrations/<int:vehicle_id>/edit")
@require_feature(Feature.VEHICLE_REGISTRATIONS)
def vehicle_edit(vehicle_id: int):
    vehicle = _get_or_404(vehicle_id)
    payload = json_body()
    errors = validate_vehicle_payload(payload)
    if errors:
        return validation_error(errors)
    update_vehicle(db_session(), vehicle, payload, _current_user())
    return serialize(vehicle)


@bp.post("/vehicle-registrations/<int:vehicle_id>/archive")
@require_feature(Feature.VEHICLE_REGISTRATIONS)
def vehicle_archive(vehicle_id: int):
    vehicle = _get_or_404(vehicle_id)
    payload = json_body()
    set_vehicle_archived(db_session(), vehicle, parse_bool(payload.get("is_archived"), default=True), _current_user())
    return serialize(vehicle)
