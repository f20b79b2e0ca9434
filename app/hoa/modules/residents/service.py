from __future__ import annotations

import re
import secrets
from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import Conflict
from werkzeug.security import generate_password_hash

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.models import User
from app.hoa.rbac import Role
from app.hoa.utils import clean_str, parse_bool, parse_date

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hoa.modules.residents.models import Resident


RESIDENCY_TYPES = ("RESIDENT", "TENANT")
SEXES = ("MALE", "FEMALE", "PREFER_NOT_TO_SAY")

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def validate_resident_payload(payload: dict) -> list[str]:
    """Validate resident creation/update payload. Returns list of errors."""
    errors = []
    if str(payload.get("type_of_residency") or "").strip().upper() not in RESIDENCY_TYPES:
        errors.append(f"Type of residency must be one of: {', '.join(RESIDENCY_TYPES)}")
    if not str(payload.get("first_name") or "").strip():
        errors.append("First name is required.")
    if not str(payload.get("last_name") or "").strip():
        errors.append("Last name is required.")
    if str(payload.get("sex") or "").strip().upper() not in SEXES:
        errors.append(f"Sex must be one of: {', '.join(SEXES)}")
    try:
        if not parse_date(payload.get("date_of_birth")):
            errors.append("Date of birth is required.")
    except ValueError:
        errors.append("Date of birth must be YYYY-MM-DD.")
    if not str(payload.get("contact_number") or "").strip():
        errors.append("Contact number is required.")
    email = str(payload.get("email_address") or "").strip()
    if email and not is_valid_email(email):
        errors.append("Invalid email address.")
    return errors


def apply_resident_payload(resident: "Resident", payload: dict) -> None:
    resident.type_of_residency = str(payload.get("type_of_residency") or "").strip().upper()
    resident.first_name = str(payload.get("first_name") or "").strip()
    resident.middle_name = clean_str(payload.get("middle_name"))
    resident.last_name = str(payload.get("last_name") or "").strip()
    resident.suffix = clean_str(payload.get("suffix"))
    resident.sex = str(payload.get("sex") or "").strip().upper()
    resident.date_of_birth = parse_date(payload.get("date_of_birth"))  # type: ignore[assignment]
    resident.contact_number = str(payload.get("contact_number") or "").strip()
    email = clean_str(payload.get("email_address"))
    resident.email_address = email.lower() if email else None
    resident.is_head = parse_bool(payload.get("is_head"))
    resident.block_no = clean_str(payload.get("block_no"))
    resident.lot_no = clean_str(payload.get("lot_no"))
    resident.street = clean_str(payload.get("street"))


def find_household_head(
    s: "Session", *, block_no: str | None, lot_no: str | None, street: str | None, exclude_id: int | None = None
) -> "Resident | None":
    from app.hoa.modules.residents.models import Resident

    q = s.query(Resident).filter(
        Resident.is_head.is_(True),
        Resident.block_no == block_no,
        Resident.lot_no.is_(None) if lot_no is None else Resident.lot_no == lot_no,
        Resident.street == street,
    )
    if exclude_id is not None:
        q = q.filter(Resident.id != exclude_id)
    return q.first()


def ensure_single_head(s: "Session", resident: "Resident", exclude_id: int | None = None) -> None:
    """Only one household head per household address."""
    if not resident.is_head or not resident.block_no:
        return
    existing = find_household_head(
        s, block_no=resident.block_no, lot_no=resident.lot_no, street=resident.street, exclude_id=exclude_id
    )
    if existing:
        raise Conflict(description="This household already has a head account.")


def _ensure_head_account(s: "Session", resident: "Resident") -> User | None:
    """Household heads with an email get a portal account (USER role)."""
    if not resident.is_head or not resident.email_address:
        return None
    existing = s.query(User).filter(User.email == resident.email_address).one_or_none()
    if existing:
        resident.user_id = existing.id
        return None
    account = User(
        name=resident.full_name,
        email=resident.email_address,
        # Random credential; the resident sets a password through the portal.
        password_hash=generate_password_hash(secrets.token_urlsafe(24)),
        role=Role.USER.value,
        is_approved=True,
    )
    s.add(account)
    s.flush()
    resident.user_id = account.id
    return account


def create_resident(s: "Session", payload: dict, user: User) -> "Resident":
    """Create a resident and record it in the system log."""
    from app.hoa.modules.residents.models import Resident

    now = datetime.utcnow()
    resident = Resident(created_at=now, updated_at=now)
    apply_resident_payload(resident, payload)
    ensure_single_head(s, resident)

    s.add(resident)
    s.flush()
    account = _ensure_head_account(s, resident)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.RESIDENTS,
        entity_id=resident.id,
        entity_type="Resident",
        description=create_log_description(
            LogAction.CREATE,
            "Resident",
            resident.full_name,
            f"{resident.type_of_residency}{' (Household Head)' if resident.is_head else ''}",
        ),
        metadata={
            "type_of_residency": resident.type_of_residency,
            "is_head": resident.is_head,
            "account_created": account is not None,
        },
    )
    return resident


def update_resident(s: "Session", resident: "Resident", payload: dict, user: User) -> "Resident":
    apply_resident_payload(resident, payload)
    ensure_single_head(s, resident, exclude_id=resident.id)
    resident.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.RESIDENTS,
        entity_id=resident.id,
        entity_type="Resident",
        description=create_log_description(LogAction.UPDATE, "Resident", resident.full_name),
    )
    return resident


def set_resident_archived(s: "Session", resident: "Resident", is_archived: bool, user: User) -> "Resident":
    resident.is_archived = is_archived
    resident.updated_at = datetime.utcnow()
    s.commit()

    action = LogAction.ARCHIVE if is_archived else LogAction.RETRIEVE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.RESIDENTS,
        entity_id=resident.id,
        entity_type="Resident",
        description=create_log_description(action, "Resident", resident.full_name),
    )
    return resident
