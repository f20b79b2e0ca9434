from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.residents.models import Resident
from app.hoa.modules.residents.service import (
    create_resident,
    set_resident_archived,
    update_resident,
    validate_resident_payload,
)
from app.hoa.rbac import Feature, require_feature
from app.hoa.utils import json_body, parse_bool, serialize, validation_error

bp = Blueprint("residents", __name__)

_FORBIDDEN = "You do not have permission to manage residents."


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(resident_id: int) -> Resident:
    resident = db_session().get(Resident, resident_id)
    if not resident:
        abort(404, description="Resident not found.")
    return resident


@bp.get("/residents")
@require_feature(Feature.RESIDENTS, _FORBIDDEN)
def residents_list():
    s = db_session()
    q = s.query(Resident)
    if not parse_bool(request.args.get("include_archived")):
        q = q.filter(Resident.is_archived.is_(False))
    residents = q.order_by(Resident.created_at.desc(), Resident.id.desc()).all()
    return {"data": [serialize(r) for r in residents]}


@bp.get("/residents/<int:resident_id>")
@require_feature(Feature.RESIDENTS, _FORBIDDEN)
def resident_detail(resident_id: int):
    return serialize(_get_or_404(resident_id))


@bp.post("/residents")
@require_feature(Feature.RESIDENTS, _FORBIDDEN)
def residents_create():
    payload = json_body()
    errors = validate_resident_payload(payload)
    if errors:
        return validation_error(errors)
    resident = create_resident(db_session(), payload, _current_user())
    return serialize(resident), 201


@bp.post("/residents/<int:resident_id>/edit")
@require_feature(Feature.RESIDENTS, _FORBIDDEN)
def resident_edit(resident_id: int):
    resident = _get_or_404(resident_id)
    payload = json_body()
    errors = validate_resident_payload(payload)
    if errors:
        return validation_error(errors)
    update_resident(db_session(), resident, payload, _current_user())
    return serialize(resident)


@bp.post("/residents/<int:resident_id>/archive")
@require_feature(Feature.RESIDENTS, _FORBIDDEN)
def resident_archive(resident_id: int):
    resident = _get_or_404(resident_id)
    payload = json_body()
    set_resident_archived(db_session(), resident, parse_bool(payload.get("is_archived"), default=True), _current_user())
    return serialize(resident)
