from __future__ import annotations

from flask import Blueprint, abort, request

from app.hoa.db import db_session
from app.hoa.modules.feedback.service import (
    CATEGORIES,
    STATUSES,
    create_feedback,
    filtered_query,
    validate_feedback_payload,
)
from app.hoa.rbac import Feature, require_feature
from app.hoa.utils import json_body, serialize, validation_error

bp = Blueprint("feedback", __name__)


@bp.post("/public/feedback")
def feedback_submit():
    payload = json_body()
    errors = validate_feedback_payload(payload)
    if errors:
        return validation_error(errors)
    f = create_feedback(db_session(), payload)
    return {"id": f.id, "status": f.status}, 201


@bp.get("/feedback")
@require_feature(Feature.FEEDBACK)
def feedback_list():
    status = (request.args.get("status") or "").strip().upper() or None
    category = (request.args.get("category") or "").strip().upper() or None
    if status and status not in STATUSES:
        abort(400, description=f"status must be one of: {', '.join(STATUSES)}")
    if category and category not in CATEGORIES:
        abort(400, description=f"category must be one of: {', '.join(CATEGORIES)}")
    rows = filtered_query(db_session(), status=status, category=category).all()
    return {"data": [serialize(f, include=("resident",)) for f in rows]}
