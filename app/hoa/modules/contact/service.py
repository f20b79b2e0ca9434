from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_

from app.hoa.modules.residents.service import is_valid_email
from app.hoa.utils import clean_str

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.hoa.modules.contact.models import Contact


STATUSES = ("NEW", "IN_PROGRESS", "RESOLVED", "CLOSED")


def _length_error(value: str, label: str, min_len: int, max_len: int) -> str | None:
    if len(value) < min_len:
        return f"{label} must be at least {min_len} characters."
    if len(value) > max_len:
        return f"{label} must be at most {max_len} characters."
    return None


def validate_contact_payload(payload: dict) -> list[str]:
    """Validate public contact form payload. Returns list of errors."""
    errors = []
    checks = (
        ("full_name", "Full name", 2, 100),
        ("subject", "Subject", 5, 200),
        ("message", "Message", 20, 2000),
    )
    for key, label, lo, hi in checks:
        err = _length_error(str(payload.get(key) or "").strip(), label, lo, hi)
        if err:
            errors.append(err)
    email = str(payload.get("email") or "").strip()
    if not is_valid_email(email):
        errors.append("Please enter a valid email address.")
    phone = str(payload.get("phone_number") or "").strip()
    if phone:
        err = _length_error(phone, "Contact number", 7, 20)
        if err:
            errors.append(err)
    return errors


def create_contact(s: "Session", payload: dict) -> "Contact":
    from app.hoa.modules.contact.models import Contact

    now = datetime.utcnow()
    c = Contact(
        full_name=str(payload["full_name"]).strip(),
        email=str(payload["email"]).strip().lower(),
        phone_number=clean_str(payload.get("phone_number")),
        subject=str(payload["subject"]).strip(),
        message=str(payload["message"]).strip(),
        status="NEW",
        created_at=now,
        updated_at=now,
    )
    s.add(c)
    s.commit()
    return c


def filtered_query(s: "Session", *, status: str | None = None, search: str | None = None) -> "Query":
    from app.hoa.modules.contact.models import Contact

    q = s.query(Contact).filter(Contact.is_archived.is_(False))
    if status:
        q = q.filter(Contact.status == status.upper())
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Contact.full_name.ilike(like),
                Contact.email.ilike(like),
                Contact.subject.ilike(like),
                Contact.message.ilike(like),
            )
        )
    return q.order_by(Contact.created_at.desc(), Contact.id.desc())


def update_contact_status(s: "Session", c: "Contact", status: str) -> "Contact":
    status = status.strip().upper()
    if status not in STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(STATUSES)}")
    c.status = status
    c.updated_at = datetime.utcnow()
    s.commit()
    return c


def set_contact_archived(s: "Session", c: "Contact", is_archived: bool) -> "Contact":
    c.is_archived = is_archived
    c.updated_at = datetime.utcnow()
    s.commit()
    return c
