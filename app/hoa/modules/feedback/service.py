from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.hoa.modules.residents.service import is_valid_email
from app.hoa.utils import clean_str, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.hoa.modules.feedback.models import Feedback


CATEGORIES = ("GENERAL", "AMENITIES", "SECURITY", "BILLING", "EVENT", "SUGGESTION", "OTHER")
STATUSES = ("NEW", "IN_REVIEW", "RESOLVED")


def validate_feedback_payload(payload: dict) -> list[str]:
    """Validate public feedback payload. Returns list of errors."""
    errors = []
    if len(str(payload.get("resident_name") or "").strip()) < 2:
        errors.append("Name is required.")
    email = str(payload.get("contact_email") or "").strip()
    if email and not is_valid_email(email):
        errors.append("Please enter a valid email.")
    phone = str(payload.get("contact_number") or "").strip()
    if phone and not 7 <= len(phone) <= 20:
        errors.append("Contact number must be 7 to 20 characters.")
    subject = str(payload.get("subject") or "").strip()
    if not 5 <= len(subject) <= 120:
        errors.append("Subject must be 5 to 120 characters.")
    message = str(payload.get("message") or "").strip()
    if not 20 <= len(message) <= 1500:
        errors.append("Message must be 20 to 1500 characters.")
    if str(payload.get("category") or "").strip().upper() not in CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(CATEGORIES)}")
    rating = payload.get("rating")
    if rating not in (None, ""):
        try:
            if isinstance(rating, bool) or not 1 <= int(rating) <= 5 or int(rating) != float(rating):
                errors.append("Rating must be a whole number from 1 to 5.")
        except (TypeError, ValueError):
            errors.append("Rating must be a whole number from 1 to 5.")
    resident_id = str(payload.get("resident_id") or "").strip()
    if resident_id and not resident_id.isdigit():
        errors.append("Resident id must be a number.")
    return errors


def create_feedback(s: "Session", payload: dict) -> "Feedback":
    from app.hoa.modules.feedback.models import Feedback

    now = datetime.utcnow()
    rating = payload.get("rating")
    resident_id = clean_str(payload.get("resident_id"))
    email = clean_str(payload.get("contact_email"))
    f = Feedback(
        resident_name=str(payload["resident_name"]).strip(),
        contact_email=email.lower() if email else None,
        contact_number=clean_str(payload.get("contact_number")),
        subject=str(payload["subject"]).strip(),
        message=str(payload["message"]).strip(),
        category=str(payload["category"]).strip().upper(),
        rating=int(rating) if rating not in (None, "") else None,
        allow_follow_up=parse_bool(payload.get("allow_follow_up"), default=True),
        status="NEW",
        resident_id=int(resident_id) if resident_id else None,
        created_at=now,
        updated_at=now,
    )
    s.add(f)
    s.commit()
    return f


def filtered_query(s: "Session", *, status: str | None = None, category: str | None = None) -> "Query":
    from app.hoa.modules.feedback.models import Feedback

    q = s.query(Feedback)
    if status:
        q = q.filter(Feedback.status == status.upper())
    if category:
        q = q.filter(Feedback.category == category.upper())
    return q.order_by(Feedback.created_at.desc(), Feedback.id.desc())
