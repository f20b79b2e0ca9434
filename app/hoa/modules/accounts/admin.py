from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.accounts.service import (
    approve_account,
    set_account_archived,
    update_account,
    update_role,
    validate_account_payload,
    validate_role,
)
from app.hoa.rbac import Feature, normalize_role, require_feature
from app.hoa.utils import json_body, parse_bool, serialize, validation_error

bp = Blueprint("accounts", __name__)

_FORBIDDEN = "You do not have permission to manage accounts."


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(account_id: int) -> User:
    account = db_session().get(User, account_id)
    if not account:
        abort(404, description="Account not found.")
    return account


def _dump(account: User) -> dict:
    out = serialize(account) or {}
    out["role"] = normalize_role(account.role).value
    return out


@bp.get("/accounts")
@require_feature(Feature.ACCOUNTS, _FORBIDDEN)
def accounts_list():
    s = db_session()
    q = s.query(User)
    if not parse_bool(request.args.get("include_archived"), default=True):
        q = q.filter(User.is_archived.is_(False))
    if parse_bool(request.args.get("pending_only")):
        q = q.filter(User.is_approved.is_(False))
    accounts = q.order_by(User.created_at.desc(), User.id.desc()).all()
    return {"data": [_dump(a) for a in accounts]}


@bp.get("/accounts/<int:account_id>")
@require_feature(Feature.ACCOUNTS, _FORBIDDEN)
def account_detail(account_id: int):
    return _dump(_get_or_404(account_id))


@bp.post("/accounts/<int:account_id>/role")
@require_feature(Feature.ACCOUNTS, _FORBIDDEN)
def account_role(account_id: int):
    account = _get_or_404(account_id)
    payload = json_body()
    errors = validate_role(payload.get("role"))
    if errors:
        return validation_error(errors)
    update_role(db_session(), account, str(payload["role"]), _current_user())
    return _dump(account)


@bp.post("/accounts/<int:account_id>/edit")
@require_feature(Feature.ACCOUNTS, _FORBIDDEN)
def account_edit(account_id: int):
    account = _get_or_404(account_id)
    payload = json_body()
    errors = validate_account_payload(payload)
    if errors:
        return validation_error(errors)
    update_account(db_session(), account, payload, _current_user())
    return _dump(account)


@bp.post("/accounts/<int:account_id>/archive")
@require_feature(Feature.ACCOUNTS, _FORBIDDEN)
def account_archive(account_id: int):
    account = _get_or_404(account_id)
    payload = json_body()
    is_archived = parse_bool(payload.get("is_archived"), default=True)
    if is_archived and account.id == _current_user().id:
        abort(400, description="You cannot archive your own account.")
    set_account_archived(db_session(), account, is_archived, _current_user())
    return _dump(account)


@bp.post("/accounts/<int:account_id>/approve")
@require_feature(Feature.ACCOUNTS, _FORBIDDEN)
def account_approve(account_id: int):
    account = _get_or_404(account_id)
    approve_account(db_session(), account, _current_user())
    return _dump(account)
