from __future__ import annotations

from flask import Blueprint, abort, request

from app.hoa.db import db_session
from app.hoa.modules.contact.models import Contact
from app.hoa.modules.contact.service import (
    STATUSES,
    create_contact,
    filtered_query,
    set_contact_archived,
    update_contact_status,
    validate_contact_payload,
)
from app.hoa.rbac import Feature, require_feature
from app.hoa.utils import json_body, page_args, paginate, parse_bool, serialize, validation_error

bp = Blueprint("contact", __name__)


def _get_or_404(contact_id: int) -> Contact:
    c = db_session().get(Contact, contact_id)
    if not c:
        abort(404, description="Contact message not found.")
    return c


@bp.post("/public/contact")
def contact_submit():
    """Public contact form; no account required."""
    payload = json_body()
    errors = validate_contact_payload(payload)
    if errors:
        return validation_error(errors)
    c = create_contact(db_session(), payload)
    return {"id": c.id, "status": c.status}, 201


@bp.get("/contact")
@require_feature(Feature.CONTACT)
def contact_list():
    status = (request.args.get("status") or "").strip().upper() or None
    if status and status not in STATUSES:
        abort(400, description=f"status must be one of: {', '.join(STATUSES)}")
    q = filtered_query(db_session(), status=status, search=request.args.get("search"))
    if "page" in request.args or "limit" in request.args:
        page, limit = page_args()
        rows, pagination = paginate(q, page, limit)
        return {"data": [serialize(c) for c in rows], "pagination": pagination}
    return {"data": [serialize(c) for c in q.all()]}


@bp.get("/contact/<int:contact_id>")
@require_feature(Feature.CONTACT)
def contact_detail(contact_id: int):
    return serialize(_get_or_404(contact_id))


@bp.post("/contact/<int:contact_id>/status")
@require_feature(Feature.CONTACT)
def contact_status(contact_id: int):
    c = _get_or_404(contact_id)
    payload = json_body()
    try:
        update_contact_status(db_session(), c, str(payload.get("status") or ""))
    except ValueError as e:
        return validation_error([str(e)])
    return serialize(c)


@bp.post("/contact/<int:contact_id>/archive")
@require_feature(Feature.CONTACT)
def contact_archive(contact_id: int):
    c = _get_or_404(contact_id)
    payload = json_body()
    set_contact_archived(db_session(), c, parse_bool(payload.get("is_archived"), default=True))
    return serialize(c)
