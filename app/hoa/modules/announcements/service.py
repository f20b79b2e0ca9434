from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.utils import clean_str, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.hoa.models import User
    from app.hoa.modules.announcements.models import Announcement


CATEGORIES = ("IMPORTANT", "EMERGENCY", "UTILITIES", "OTHER")
PUBLICATIONS = ("PUBLISHED", "DRAFT")


def _parse_schedule(value) -> datetime | None:
    value = clean_str(value)
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


def validate_announcement_payload(payload: dict) -> list[str]:
    """Validate announcement payload. Returns list of errors."""
    errors = []
    if not str(payload.get("title") or "").strip():
        errors.append("Title is required.")
    if str(payload.get("category") or "").strip().upper() not in CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(CATEGORIES)}")
    if not str(payload.get("description") or "").strip():
        errors.append("Description is required.")
    if str(payload.get("publication") or "DRAFT").strip().upper() not in PUBLICATIONS:
        errors.append(f"Publication must be one of: {', '.join(PUBLICATIONS)}")
    try:
        _parse_schedule(payload.get("schedule"))
    except ValueError:
        errors.append("Schedule must be an ISO date/time.")
    return errors


def wants_publish(payload: dict) -> bool:
    return str(payload.get("publication") or "DRAFT").strip().upper() == "PUBLISHED"


def _apply_payload(a: "Announcement", payload: dict) -> None:
    a.title = str(payload["title"]).strip()
    a.category = str(payload["category"]).strip().upper()
    a.is_for_all = parse_bool(payload.get("is_for_all"), default=True)
    a.description = str(payload["description"]).strip()
    a.attachment = clean_str(payload.get("attachment"))
    a.schedule = _parse_schedule(payload.get("schedule"))
    a.is_pin = parse_bool(payload.get("is_pin"))
    a.publication = str(payload.get("publication") or "DRAFT").strip().upper()


def filtered_query(
    s: "Session",
    *,
    include_archived: bool = False,
    category: str | None = None,
    publication: str | None = None,
    search: str | None = None,
) -> "Query":
    """Announcements matching the filters, pinned first then newest."""
    from app.hoa.modules.announcements.models import Announcement

    q = s.query(Announcement)
    if not include_archived:
        q = q.filter(Announcement.is_archived.is_(False))
    if category:
        q = q.filter(Announcement.category == category.upper())
    if publication:
        q = q.filter(Announcement.publication == publication.upper())
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(Announcement.title.ilike(like), Announcement.description.ilike(like)))
    return q.order_by(Announcement.is_pin.desc(), Announcement.created_at.desc(), Announcement.id.desc())


def create_announcement(s: "Session", payload: dict, user: "User") -> "Announcement":
    from app.hoa.modules.announcements.models import Announcement

    now = datetime.utcnow()
    a = Announcement(created_at=now, updated_at=now)
    _apply_payload(a, payload)
    s.add(a)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.ANNOUNCEMENTS,
        entity_id=a.id,
        entity_type="Announcement",
        description=create_log_description(
            LogAction.CREATE, "Announcement", a.title, f"Category: {a.category}, Status: {a.publication}"
        ),
        metadata={"category": a.category, "publication": a.publication},
    )
    return a


def update_announcement(s: "Session", a: "Announcement", payload: dict, user: "User") -> "Announcement":
    _apply_payload(a, payload)
    a.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.ANNOUNCEMENTS,
        entity_id=a.id,
        entity_type="Announcement",
        description=create_log_description(LogAction.UPDATE, "Announcement", a.title),
    )
    return a


def set_announcement_archived(s: "Session", a: "Announcement", is_archived: bool, user: "User") -> "Announcement":
    a.is_archived = is_archived
    a.updated_at = datetime.utcnow()
    s.commit()

    action = LogAction.ARCHIVE if is_archived else LogAction.RETRIEVE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.ANNOUNCEMENTS,
        entity_id=a.id,
        entity_type="Announcement",
        description=create_log_description(action, "Announcement", a.title),
    )
    return a
