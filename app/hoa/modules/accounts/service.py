from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import Conflict

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.models import User
from app.hoa.modules.residents.service import is_valid_email
from app.hoa.rbac import Role
from app.hoa.utils import clean_str

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


ROLE_VALUES = tuple(r.value for r in Role)


def validate_role(value) -> list[str]:
    if str(value or "").strip().upper() not in ROLE_VALUES:
        return [f"Role must be one of: {', '.join(ROLE_VALUES)}"]
    return []


def validate_account_payload(payload: dict) -> list[str]:
    """Validate account details payload. Returns list of errors."""
    errors = []
    if not str(payload.get("name") or "").strip():
        errors.append("Name is required.")
    if not is_valid_email(str(payload.get("email") or "").strip()):
        errors.append("Invalid email address.")
    errors.extend(validate_role(payload.get("role")))
    return errors


def ensure_email_available(s: "Session", email: str, exclude_id: int | None = None) -> None:
    q = s.query(User).filter(User.email == email)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first() is not None:
        raise Conflict(description="An account with this email already exists.")


def update_role(s: "Session", account: User, role: str, user: User) -> User:
    old_role = account.role
    new_role = Role(role.strip().upper()).value
    account.role = new_role
    account.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.ACCOUNTS,
        entity_id=account.id,
        entity_type="Account",
        description=create_log_description(LogAction.UPDATE, "Account", account.email, f"Changed role to {new_role}"),
        metadata={"old_role": old_role, "new_role": new_role},
    )
    return account


def update_account(s: "Session", account: User, payload: dict, user: User) -> User:
    name = str(payload["name"]).strip()
    email = str(payload["email"]).strip().lower()
    role = Role(str(payload["role"]).strip().upper()).value
    ensure_email_available(s, email, exclude_id=account.id)

    changes = {"name": account.name != name, "email": account.email != email, "role": account.role != role}
    account.name = name
    account.email = email
    if "image" in payload:
        account.image = clean_str(payload.get("image"))
    account.role = role
    account.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.ACCOUNTS,
        entity_id=account.id,
        entity_type="Account",
        description=create_log_description(LogAction.UPDATE, "Account", account.email, "Updated account details"),
        metadata={"changes": changes},
    )
    return account


def set_account_archived(s: "Session", account: User, is_archived: bool, user: User) -> User:
    account.is_archived = is_archived
    account.updated_at = datetime.utcnow()
    s.commit()

    action = LogAction.ARCHIVE if is_archived else LogAction.RETRIEVE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.ACCOUNTS,
        entity_id=account.id,
        entity_type="Account",
        description=create_log_description(action, "Account", account.email),
    )
    return account


def approve_account(s: "Session", account: User, user: User) -> User:
    """Approve a self-registered account so it can sign in."""
    account.is_approved = True
    account.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.STATUS_CHANGE,
        module=LogModule.ACCOUNTS,
        entity_id=account.id,
        entity_type="Account",
        description=create_log_description(LogAction.STATUS_CHANGE, "Account", account.email, "Approved account"),
        metadata={"is_approved": True},
    )
    return account
