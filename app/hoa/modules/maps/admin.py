from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.maps.models import Lot
from app.hoa.modules.maps.service import create_lot, update_lot, validate_lot_payload
from app.hoa.rbac import Feature, require_feature, require_roles
from app.hoa.utils import json_body, parse_bool, serialize, validation_error

bp = Blueprint("maps", __name__)

_FORBIDDEN = "You do not have permission to manage the community map."


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(lot_id: int) -> Lot:
    lot = db_session().get(Lot, lot_id)
    if not lot:
        abort(404, description="Lot not found.")
    return lot


def _dump(lot: Lot) -> dict:
    out = serialize(lot) or {}
    out["location"] = lot.location
    return out


@bp.get("/maps")
@require_roles()
def lots_list():
    q = db_session().query(Lot)
    if parse_bool(request.args.get("available_only")):
        q = q.filter(Lot.availability.ilike("available"))
    lots = q.order_by(Lot.block_no.asc(), Lot.lot_no.asc(), Lot.id.asc()).all()
    return {"data": [_dump(lot) for lot in lots]}


@bp.get("/maps/<int:lot_id>")
@require_roles()
def lot_detail(lot_id: int):
    return _dump(_get_or_404(lot_id))


@bp.post("/maps")
@require_feature(Feature.MAPS, _FORBIDDEN)
def lots_create():
    payload = json_body()
    errors = validate_lot_payload(payload)
    if errors:
        return validation_error(errors)
    return _dump(create_lot(db_session(), payload, _current_user())), 201


@bp.post("/maps/<int:lot_id>/edit")
@require_feature(Feature.MAPS, _FORBIDDEN)
def lot_edit(lot_id: int):
    lot = _get_or_404(lot_id)
    payload = json_body()
    errors = validate_lot_payload(payload)
    if errors:
        return validation_error(errors)
    update_lot(db_session(), lot, payload, _current_user())
    return _dump(lot)
