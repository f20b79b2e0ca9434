from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.whats_new.models import WhatsNew
from app.hoa.modules.whats_new.service import (
    CATEGORIES,
    PUBLICATIONS,
    TYPES,
    create_whats_new,
    filtered_query,
    published_query,
    set_whats_new_archived,
    types_summary,
    update_whats_new,
    validate_whats_new_payload,
    wants_publish,
)
from app.hoa.rbac import Feature, guarded, require_feature, roles_for
from app.hoa.utils import json_body, page_args, paginate, parse_bool, serialize, validation_error

bp = Blueprint("whats_new", __name__)

_FORBIDDEN = "You do not have permission to manage news and events."
_PUBLISH_FORBIDDEN = "Only a super admin can publish news and events."


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(item_id: int) -> WhatsNew:
    item = db_session().get(WhatsNew, item_id)
    if not item:
        abort(404, description="Item not found.")
    return item


def _choice_arg(name: str, choices: tuple[str, ...]) -> str | None:
    value = (request.args.get(name) or "").strip().upper()
    if not value:
        return None
    if value not in choices:
        abort(400, description=f"{name} must be one of: {', '.join(choices)}")
    return value


# Public (landing and community pages)


@bp.get("/whats-new/published")
def whats_new_published():
    try:
        limit = int(request.args.get("limit") or 10)
    except ValueError:
        abort(400, description="limit must be an integer.")
    if limit < 1 or limit > 100:
        abort(400, description="limit must be between 1 and 100.")
    q = published_query(db_session(), type_=_choice_arg("type", TYPES), category=_choice_arg("category", CATEGORIES))
    return {"data": [serialize(i) for i in q.limit(limit).all()]}


@bp.get("/whats-new/published/<int:item_id>")
def whats_new_published_one(item_id: int):
    item = db_session().get(WhatsNew, item_id)
    if not item or item.is_archived or item.publication != "PUBLISHED":
        abort(404, description="Item not found.")
    return serialize(item)


@bp.get("/whats-new/summary")
def whats_new_summary():
    return types_summary(db_session())


# Staff


@bp.get("/whats-new")
@require_feature(Feature.WHATS_NEW, _FORBIDDEN)
def whats_new_list():
    page, limit = page_args()
    featured = request.args.get("is_featured")
    q = filtered_query(
        db_session(),
        include_archived=parse_bool(request.args.get("include_archived")),
        type_=_choice_arg("type", TYPES),
        category=_choice_arg("category", CATEGORIES),
        publication=_choice_arg("publication", PUBLICATIONS),
        is_featured=parse_bool(featured) if featured not in (None, "") else None,
        search=request.args.get("search"),
    )
    rows, pagination = paginate(q, page, limit)
    return {"data": [serialize(i) for i in rows], "pagination": pagination}


@bp.get("/whats-new/<int:item_id>")
@require_feature(Feature.WHATS_NEW, _FORBIDDEN)
def whats_new_detail(item_id: int):
    return serialize(_get_or_404(item_id))


@bp.post("/whats-new")
@require_feature(Feature.WHATS_NEW, _FORBIDDEN)
def whats_new_create():
    payload = json_body()
    errors = validate_whats_new_payload(payload)
    if errors:
        return validation_error(errors)
    user = _current_user()
    if wants_publish(payload):
        item = guarded(
            user.role,
            roles_for(Feature.WHATS_NEW_PUBLISH),
            create_whats_new,
            db_session(),
            payload,
            user,
            message=_PUBLISH_FORBIDDEN,
        )
    else:
        item = create_whats_new(db_session(), payload, user)
    return serialize(item), 201


@bp.post("/whats-new/<int:item_id>/edit")
@require_feature(Feature.WHATS_NEW, _FORBIDDEN)
def whats_new_edit(item_id: int):
    item = _get_or_404(item_id)
    payload = json_body()
    errors = validate_whats_new_payload(payload)
    if errors:
        return validation_error(errors)
    user = _current_user()
    if wants_publish(payload):
        guarded(
            user.role,
            roles_for(Feature.WHATS_NEW_PUBLISH),
            update_whats_new,
            db_session(),
            item,
            payload,
            user,
            message=_PUBLISH_FORBIDDEN,
        )
    else:
        update_whats_new(db_session(), item, payload, user)
    return serialize(item)


@bp.post("/whats-new/<int:item_id>/archive")
@require_feature(Feature.WHATS_NEW, _FORBIDDEN)
def whats_new_archive(item_id: int):
    item = _get_or_404(item_id)
    payload = json_body()
    set_whats_new_archived(db_session(), item, parse_bool(payload.get("is_archived"), default=True), _current_user())
    return serialize(item)
