from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.announcements.models import Announcement
from app.hoa.modules.announcements.service import (
    CATEGORIES,
    PUBLICATIONS,
    create_announcement,
    filtered_query,
    set_announcement_archived,
    update_announcement,
    validate_announcement_payload,
    wants_publish,
)
from app.hoa.rbac import Feature, guarded, require_feature, roles_for
from app.hoa.utils import json_body, page_args, paginate, parse_bool, serialize, validation_error

bp = Blueprint("announcements", __name__)

_PUBLISH_FORBIDDEN = "Only a super admin can publish announcements."


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(announcement_id: int) -> Announcement:
    a = db_session().get(Announcement, announcement_id)
    if not a:
        abort(404, description="Announcement not found.")
    return a


def _choice_arg(name: str, choices: tuple[str, ...]) -> str | None:
    value = (request.args.get(name) or "").strip().upper()
    if not value:
        return None
    if value not in choices:
        abort(400, description=f"{name} must be one of: {', '.join(choices)}")
    return value


@bp.get("/announcements")
@require_feature(Feature.ANNOUNCEMENTS)
def announcements_list():
    page, limit = page_args()
    q = filtered_query(
        db_session(),
        include_archived=parse_bool(request.args.get("include_archived")),
        category=_choice_arg("category", CATEGORIES),
        publication=_choice_arg("publication", PUBLICATIONS),
        search=request.args.get("search"),
    )
    rows, pagination = paginate(q, page, limit)
    return {"data": [serialize(a) for a in rows], "pagination": pagination}


@bp.get("/announcements/<int:announcement_id>")
@require_feature(Feature.ANNOUNCEMENTS)
def announcement_detail(announcement_id: int):
    return serialize(_get_or_404(announcement_id))


@bp.post("/announcements")
@require_feature(Feature.ANNOUNCEMENTS)
def announcements_create():
    payload = json_body()
    errors = validate_announcement_payload(payload)
    if errors:
        return validation_error(errors)
    user = _current_user()
    if wants_publish(payload):
        a = guarded(
            user.role,
            roles_for(Feature.ANNOUNCEMENTS_PUBLISH),
            create_announcement,
            db_session(),
            payload,
            user,
            message=_PUBLISH_FORBIDDEN,
        )
    else:
        a = create_announcement(db_session(), payload, user)
    return serialize(a), 201


@bp.post("/announcements/<int:announcement_id>/edit")
@require_feature(Feature.ANNOUNCEMENTS)
def announcement_edit(announcement_id: int):
    a = _get_or_404(announcement_id)
    payload = json_body()
    errors = validate_announcement_payload(payload)
    if errors:
        return validation_error(errors)
    user = _current_user()
    if wants_publish(payload):
        guarded(
            user.role,
            roles_for(Feature.ANNOUNCEMENTS_PUBLISH),
            update_announcement,
            db_session(),
            a,
            payload,
            user,
            message=_PUBLISH_FORBIDDEN,
        )
    else:
        update_announcement(db_session(), a, payload, user)
    return serialize(a)


@bp.post("/announcements/<int:announcement_id>/archive")
@require_feature(Feature.ANNOUNCEMENTS)
def announcement_archive(announcement_id: int):
    a = _get_or_404(announcement_id)
    payload = json_body()
    set_announcement_archived(db_session(), a, parse_bool(payload.get("is_archived"), default=True), _current_user())
    return serialize(a)
