from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, abort, current_app, g, request, session
from werkzeug.exceptions import Conflict
from werkzeug.security import check_password_hash, generate_password_hash

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.maps.service import occupy_lot
from app.hoa.modules.residents.models import Resident
from app.hoa.modules.residents.service import ensure_single_head, is_valid_email, validate_resident_payload
from app.hoa.rbac import DEFAULT_ROLE, accessible_features, normalize_role, require_roles
from app.hoa.security import ensure_csrf_token
from app.hoa.utils import clean_str, json_body, parse_date, validation_error

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
MIN_PASSWORD_LENGTH = 8


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or user.is_archived:
            session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


def _me(user: User) -> dict:
    role = normalize_role(user.role)
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "image": user.image,
        "role": role.value,
        "is_approved": user.is_approved,
        "features": accessible_features(role),
    }


@bp.get("/csrf")
def csrf():
    return {"csrf_token": ensure_csrf_token()}


@bp.post("/login")
def login():
    payload = json_body()
    email = str(payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return {"error": "too_many_requests", "message": "Too many login attempts. Please wait 5 minutes."}, 429

    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or user.is_archived or not check_password_hash(user.password_hash, password):
        current_app.logger.warning("Login failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        abort(401, description="Invalid credentials.")
    if not user.is_approved:
        abort(403, description="Your account is pending approval.")

    session.clear()
    session["user_id"] = user.id
    ensure_csrf_token()
    _login_attempts[ip].clear()

    create_system_log(
        user_id=user.id,
        action=LogAction.LOGIN,
        module=LogModule.AUTH,
        entity_id=user.id,
        entity_type="Account",
        description=create_log_description(LogAction.LOGIN, "Account", user.email),
    )
    return _me(user)


@bp.post("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        create_system_log(
            user_id=user.id,
            action=LogAction.LOGOUT,
            module=LogModule.AUTH,
            entity_id=user.id,
            entity_type="Account",
            description=create_log_description(LogAction.LOGOUT, "Account", user.email),
        )
    session.pop("user_id", None)
    return {"ok": True}


@bp.get("/me")
@require_roles()
def me():
    return _me(g.current_user)


@bp.get("/approval-status")
@require_roles()
def approval_status():
    return {"is_approved": bool(g.current_user.is_approved)}


@bp.post("/change-password")
@require_roles()
def change_password():
    user: User = g.current_user
    payload = json_body()
    current = str(payload.get("current_password") or "")
    new = str(payload.get("new_password") or "")
    errors = []
    if not check_password_hash(user.password_hash, current):
        errors.append("Current password is incorrect.")
    if len(new) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if "confirm_password" in payload and payload.get("confirm_password") != new:
        errors.append("Passwords do not match.")
    if errors:
        return validation_error(errors)

    s = db_session()
    user.password_hash = generate_password_hash(new)
    user.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.PASSWORD_CHANGE,
        module=LogModule.SETTINGS,
        entity_id=user.id,
        entity_type="Account",
        description=create_log_description(LogAction.PASSWORD_CHANGE, "Account", user.email),
    )
    return {"ok": True}


@bp.post("/profile")
@require_roles()
def update_profile():
    user: User = g.current_user
    payload = json_body()
    s = db_session()
    changed: list[str] = []

    if "name" in payload:
        name = str(payload.get("name") or "").strip()
        if not name:
            return validation_error(["Name is required."])
        user.name = name
        changed.append("name")
    if "email" in payload:
        email = str(payload.get("email") or "").strip().lower()
        if not is_valid_email(email):
            return validation_error(["Invalid email address."])
        if s.query(User).filter(User.email == email, User.id != user.id).first():
            raise Conflict(description="An account with this email already exists.")
        user.email = email
        changed.append("email")
    if "image" in payload:
        user.image = clean_str(payload.get("image"))
        changed.append("image")
    if not changed:
        return validation_error(["No fields to update."])

    user.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.PROFILE_UPDATE,
        module=LogModule.SETTINGS,
        entity_id=user.id,
        entity_type="Account",
        description=create_log_description(LogAction.PROFILE_UPDATE, "Account", user.email),
        metadata={"fields": changed},
    )
    return _me(user)


def _validate_sign_up(payload: dict) -> list[str]:
    errors = validate_resident_payload(payload)
    if not is_valid_email(str(payload.get("email_address") or "").strip()):
        errors.append("Email address is required.")
    if not str(payload.get("block_no") or "").strip():
        errors.append("Block is required.")
    if not str(payload.get("street") or "").strip():
        errors.append("Street is required.")
    if len(str(payload.get("password") or "")) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    return errors


@bp.post("/sign-up")
def sign_up():
    """
    Public self-registration. Creates an unapproved USER account and the
    household-head resident record linked to it; staff approve the account.
    """
    payload = json_body()
    errors = _validate_sign_up(payload)
    if errors:
        return validation_error(errors)

    s = db_session()
    email = str(payload["email_address"]).strip().lower()
    if s.query(User).filter(User.email == email).first():
        raise Conflict(description="An account with this email already exists.")

    now = datetime.utcnow()
    resident = Resident(
        type_of_residency=str(payload["type_of_residency"]).strip().upper(),
        first_name=str(payload["first_name"]).strip(),
        middle_name=clean_str(payload.get("middle_name")),
        last_name=str(payload["last_name"]).strip(),
        suffix=clean_str(payload.get("suffix")),
        sex=str(payload["sex"]).strip().upper(),
        date_of_birth=parse_date(payload.get("date_of_birth")),
        contact_number=str(payload["contact_number"]).strip(),
        email_address=email,
        is_head=True,
        block_no=str(payload["block_no"]).strip(),
        lot_no=clean_str(payload.get("lot_no")),
        street=str(payload["street"]).strip(),
        created_at=now,
        updated_at=now,
    )
    ensure_single_head(s, resident)
    occupy_lot(s, resident.block_no, resident.lot_no, resident.street)

    user = User(
        name=resident.full_name,
        email=email,
        password_hash=generate_password_hash(str(payload["password"])),
        role=DEFAULT_ROLE.value,
        is_approved=False,
        created_at=now,
        updated_at=now,
    )
    s.add(user)
    s.flush()
    resident.user_id = user.id
    s.add(resident)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.ACCOUNTS,
        entity_id=user.id,
        entity_type="Account",
        description=create_log_description(LogAction.CREATE, "Account", user.email, "Self-registration"),
        metadata={"resident_id": resident.id},
    )
    return {"id": user.id, "resident_id": resident.id, "is_approved": False}, 201
