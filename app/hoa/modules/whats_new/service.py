from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.utils import clean_str, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.hoa.models import User
    from app.hoa.modules.whats_new.models import WhatsNew


TYPES = ("BLOG", "NEWS", "GO_TO_PLACES", "MEDIA_HUB")
CATEGORIES = (
    "INVESTMENT",
    "TRAVEL",
    "SHOPPING",
    "FOOD",
    "LIFESTYLE",
    "TECHNOLOGY",
    "HEALTH",
    "EDUCATION",
    "ENTERTAINMENT",
    "OTHER",
)
PUBLICATIONS = ("PUBLISHED", "DRAFT")


def validate_whats_new_payload(payload: dict) -> list[str]:
    """Validate a what's-new post payload. Returns list of errors."""
    errors = []
    if not str(payload.get("title") or "").strip():
        errors.append("Title is required.")
    if not str(payload.get("description") or "").strip():
        errors.append("Description is required.")
    if str(payload.get("type") or "").strip().upper() not in TYPES:
        errors.append(f"Type must be one of: {', '.join(TYPES)}")
    category = str(payload.get("category") or "").strip().upper()
    if category and category not in CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(CATEGORIES)}")
    if str(payload.get("publication") or "DRAFT").strip().upper() not in PUBLICATIONS:
        errors.append(f"Publication must be one of: {', '.join(PUBLICATIONS)}")
    return errors


def wants_publish(payload: dict) -> bool:
    return str(payload.get("publication") or "DRAFT").strip().upper() == "PUBLISHED"


def _apply_payload(item: "WhatsNew", payload: dict) -> None:
    item.title = str(payload["title"]).strip()
    item.description = str(payload["description"]).strip()
    item.type = str(payload["type"]).strip().upper()
    category = clean_str(payload.get("category"))
    item.category = category.upper() if category else None
    item.content = clean_str(payload.get("content"))
    item.image_url = clean_str(payload.get("image_url"))
    item.attachment_url = clean_str(payload.get("attachment_url"))
    item.publication = str(payload.get("publication") or "DRAFT").strip().upper()
    item.is_featured = parse_bool(payload.get("is_featured"))


def filtered_query(
    s: "Session",
    *,
    include_archived: bool = False,
    type_: str | None = None,
    category: str | None = None,
    publication: str | None = None,
    is_featured: bool | None = None,
    search: str | None = None,
) -> "Query":
    """Staff listing, newest first."""
    from app.hoa.modules.whats_new.models import WhatsNew

    q = s.query(WhatsNew)
    if not include_archived:
        q = q.filter(WhatsNew.is_archived.is_(False))
    if type_:
        q = q.filter(WhatsNew.type == type_)
    if category:
        q = q.filter(WhatsNew.category == category)
    if publication:
        q = q.filter(WhatsNew.publication == publication)
    if is_featured is not None:
        q = q.filter(WhatsNew.is_featured.is_(is_featured))
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(WhatsNew.title.ilike(like), WhatsNew.description.ilike(like)))
    return q.order_by(WhatsNew.created_at.desc(), WhatsNew.id.desc())


def published_query(s: "Session", *, type_: str | None = None, category: str | None = None) -> "Query":
    """Public listing: published, not archived, featured first then newest."""
    from app.hoa.modules.whats_new.models import WhatsNew

    q = s.query(WhatsNew).filter(WhatsNew.is_archived.is_(False), WhatsNew.publication == "PUBLISHED")
    if type_:
        q = q.filter(WhatsNew.type == type_)
    if category:
        q = q.filter(WhatsNew.category == category)
    return q.order_by(WhatsNew.is_featured.desc(), WhatsNew.created_at.desc(), WhatsNew.id.desc())


def types_summary(s: "Session") -> dict[str, int]:
    summary = {t: 0 for t in TYPES}
    for item in published_query(s):
        summary[item.type] += 1
    return summary


def create_whats_new(s: "Session", payload: dict, user: "User") -> "WhatsNew":
    from app.hoa.modules.whats_new.models import WhatsNew

    now = datetime.utcnow()
    item = WhatsNew(created_at=now, updated_at=now)
    _apply_payload(item, payload)
    s.add(item)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.WHATS_NEW,
        entity_id=item.id,
        entity_type="WhatsNew",
        description=create_log_description(
            LogAction.CREATE, "What's New", item.title, f"Type: {item.type}, Status: {item.publication}"
        ),
        metadata={"type": item.type, "publication": item.publication},
    )
    return item


def update_whats_new(s: "Session", item: "WhatsNew", payload: dict, user: "User") -> "WhatsNew":
    _apply_payload(item, payload)
    item.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.WHATS_NEW,
        entity_id=item.id,
        entity_type="WhatsNew",
        description=create_log_description(LogAction.UPDATE, "What's New", item.title),
    )
    return item


def set_whats_new_archived(s: "Session", item: "WhatsNew", is_archived: bool, user: "User") -> "WhatsNew":
    item.is_archived = is_archived
    item.updated_at = datetime.utcnow()
    s.commit()

    action = LogAction.ARCHIVE if is_archived else LogAction.RETRIEVE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.WHATS_NEW,
        entity_id=item.id,
        entity_type="WhatsNew",
        description=create_log_description(action, "What's New", item.title),
    )
    return item
