from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.hoa.db import db_session
from app.hoa.models import User
from app.hoa.modules.monthly_dues.models import MonthlyDue
from app.hoa.modules.monthly_dues.service import (
    delete_due,
    list_transactions,
    record_batch_payment,
    record_payment,
    residents_summary,
    update_due_status,
    validate_batch_payload,
    validate_payment_payload,
    year_ledger,
)
from app.hoa.modules.residents.models import Resident
from app.hoa.rbac import STAFF_ROLES, Feature, require_feature, require_roles
from app.hoa.utils import json_body, serialize, validation_error

bp = Blueprint("monthly_dues", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _year_arg() -> int | None:
    raw = (request.args.get("year") or "").strip()
    if not raw:
        return None
    if not raw.isdigit():
        abort(400, description="year must be an integer.")
    return int(raw)


def _get_or_404(due_id: int) -> MonthlyDue:
    due = db_session().get(MonthlyDue, due_id)
    if not due:
        abort(404, description="Monthly due payment not found.")
    return due


def _dump(due: MonthlyDue, transaction_id: int | None = None) -> dict:
    out = serialize(due) or {}
    if transaction_id is not None:
        out["transaction_id"] = transaction_id
    return out


@bp.get("/monthly-dues/residents")
@require_roles(STAFF_ROLES)
def dues_summary():
    return {"data": residents_summary(db_session(), _year_arg())}


@bp.get("/monthly-dues/residents/<int:resident_id>")
@require_roles(STAFF_ROLES)
def dues_ledger(resident_id: int):
    resident = db_session().get(Resident, resident_id)
    if not resident:
        abort(404, description="Household head not found.")
    return year_ledger(db_session(), resident, _year_arg())


@bp.get("/monthly-dues/residents/<int:resident_id>/transactions")
@require_roles(STAFF_ROLES)
def dues_transactions(resident_id: int):
    rows = list_transactions(db_session(), resident_id, _year_arg())
    data = []
    for t in rows:
        item = serialize(t) or {}
        item["month"] = t.monthly_due.month
        item["year"] = t.monthly_due.year
        item["resident_name"] = t.resident.full_name if t.resident else None
        data.append(item)
    return {"data": data}


@bp.post("/monthly-dues/payments")
@require_roles(STAFF_ROLES)
def dues_record_payment():
    payload = json_body()
    errors = validate_payment_payload(payload)
    if errors:
        return validation_error(errors)
    due, transaction = record_payment(db_session(), payload, _current_user())
    return _dump(due, transaction.id), 201


@bp.post("/monthly-dues/payments/batch")
@require_roles(STAFF_ROLES)
def dues_record_batch_payment():
    payload = json_body()
    errors = validate_batch_payload(payload)
    if errors:
        return validation_error(errors)
    results = record_batch_payment(db_session(), payload, _current_user())
    return {"data": [_dump(due, t.id) for due, t in results]}, 201


@bp.post("/monthly-dues/<int:due_id>/status")
@require_feature(Feature.TRANSACTIONS, "You do not have permission to approve monthly dues.")
def dues_update_status(due_id: int):
    due = _get_or_404(due_id)
    payload = json_body()
    try:
        update_due_status(db_session(), due, str(payload.get("status") or ""), _current_user())
    except ValueError as e:
        return validation_error([str(e)])
    return _dump(due)


@bp.post("/monthly-dues/<int:due_id>/delete")
@require_roles(STAFF_ROLES)
def dues_delete(due_id: int):
    return delete_due(db_session(), _get_or_404(due_id), _current_user())
