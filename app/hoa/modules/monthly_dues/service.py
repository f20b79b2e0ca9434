"""
Monthly dues ledger.

Dues are tracked per household against its head. Each calendar month owes a
fixed amount (MONTHLY_DUE_AMOUNT); a month is paid once the sum recorded for it
reaches that amount, and overdue when it is unpaid and already in the past.
Households with AUTO_ARCHIVE_OVERDUE_MONTHS or more overdue months in the
current year are archived, and un-archived again once they catch up.
"""
from __future__ import annotations

import calendar
import math
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from flask import current_app
from werkzeug.exceptions import BadRequest

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.utils import clean_str, parse_bool, serialize

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hoa.models import User
    from app.hoa.modules.monthly_dues.models import MonthlyDue, PaymentTransaction
    from app.hoa.modules.residents.models import Resident


STATUSES = ("PENDING", "APPROVED", "REJECTED")
PAYMENT_METHODS = ("CASH", "GCASH", "MAYA", "OTHER_BANK")
MIN_YEAR, MAX_YEAR = 2000, 3000
MAX_ADVANCE_MONTHS = 12


def due_amount() -> float:
    return float(current_app.config.get("MONTHLY_DUE_AMOUNT", 750))


def auto_archive_threshold() -> int:
    return int(current_app.config.get("AUTO_ARCHIVE_OVERDUE_MONTHS", 6))


def month_name(month: int) -> str:
    return calendar.month_name[month]


def _next_month(month: int, year: int) -> tuple[int, int]:
    return (1, year + 1) if month == 12 else (month + 1, year)


def build_months(dues: Iterable["MonthlyDue"], year: int, today: date, amount: float) -> list[dict[str, Any]]:
    """Twelve month rows (paid / balance / advance / overdue) for one household and year."""
    by_month: dict[int, list["MonthlyDue"]] = {m: [] for m in range(1, 13)}
    for d in dues:
        if d.year == year:
            by_month[d.month].append(d)

    current = (today.year, today.month)
    rows = []
    for month in range(1, 13):
        payments = sorted(by_month[month], key=lambda d: (d.created_at or datetime.min, d.id or 0))
        total_paid = sum(p.amount_paid for p in payments)
        balance = amount - total_paid
        is_paid = balance <= 0
        rows.append(
            {
                "month": month,
                "year": year,
                "month_name": month_name(month),
                "required_amount": amount,
                "total_paid": total_paid,
                "balance": max(0.0, balance),
                "advance_payment": max(0.0, -balance),
                "is_paid": is_paid,
                "is_overdue": not is_paid and (year, month) < current,
                "is_current_month": (year, month) == current,
                "is_future_month": (year, month) > current,
                "status": payments[-1].status if payments else None,
                "payments": [serialize(p) for p in payments],
            }
        )
    return rows


def _dues_for(s: "Session", resident_id: int, year: int) -> list["MonthlyDue"]:
    from app.hoa.modules.monthly_dues.models import MonthlyDue

    return (
        s.query(MonthlyDue)
        .filter(MonthlyDue.resident_id == resident_id, MonthlyDue.year == year)
        .order_by(MonthlyDue.month.asc(), MonthlyDue.created_at.asc())
        .all()
    )


def _household(resident: "Resident") -> dict[str, Any]:
    return {"block_no": resident.block_no, "lot_no": resident.lot_no, "street": resident.street}


def year_ledger(s: "Session", resident: "Resident", year: int | None = None, today: date | None = None) -> dict[str, Any]:
    today = today or date.today()
    year = year or today.year
    if not resident.is_head:
        raise BadRequest(description="Monthly dues can only be viewed for household heads.")

    months = build_months(_dues_for(s, resident.id, year), year, today, due_amount())
    overdue = sum(1 for m in months if m["is_overdue"])
    return {
        "resident": {
            "id": resident.id,
            "first_name": resident.first_name,
            "middle_name": resident.middle_name,
            "last_name": resident.last_name,
            "suffix": resident.suffix,
            "type_of_residency": resident.type_of_residency,
            "is_archived": resident.is_archived,
            "is_head": resident.is_head,
            "household": _household(resident),
        },
        "year": year,
        "months": months,
        "total_balance": sum(m["balance"] for m in months),
        "total_advance": sum(m["advance_payment"] for m in months),
        "overdue_months": overdue,
        "should_archive": overdue >= auto_archive_threshold(),
    }


def residents_summary(s: "Session", year: int | None = None, today: date | None = None) -> list[dict[str, Any]]:
    """Balance and overdue count for every active household head."""
    from app.hoa.modules.monthly_dues.models import MonthlyDue
    from app.hoa.modules.residents.models import Resident

    today = today or date.today()
    year = year or today.year
    amount = due_amount()
    threshold = auto_archive_threshold()

    heads = (
        s.query(Resident)
        .filter(Resident.is_archived.is_(False), Resident.is_head.is_(True))
        .order_by(Resident.last_name.asc(), Resident.first_name.asc())
        .all()
    )
    dues_by_resident: dict[int, list[MonthlyDue]] = {}
    if heads:
        for d in s.query(MonthlyDue).filter(
            MonthlyDue.year == year, MonthlyDue.resident_id.in_([r.id for r in heads])
        ):
            dues_by_resident.setdefault(d.resident_id, []).append(d)

    out = []
    for r in heads:
        months = build_months(dues_by_resident.get(r.id, []), year, today, amount)
        overdue = sum(1 for m in months if m["is_overdue"])
        out.append(
            {
                "id": r.id,
                "first_name": r.first_name,
                "middle_name": r.middle_name,
                "last_name": r.last_name,
                "suffix": r.suffix,
                "type_of_residency": r.type_of_residency,
                "household": _household(r),
                "total_balance": sum(m["balance"] for m in months),
                "overdue_months": overdue,
                "should_archive": overdue >= threshold,
            }
        )
    return out


def sync_archive_status(s: "Session", resident: "Resident", today: date | None = None) -> bool:
    """
    Archive a household head with too many overdue months this year, or un-archive
    one that has caught up. Caller commits. Returns the resulting is_archived.
    """
    today = today or date.today()
    months = build_months(_dues_for(s, resident.id, today.year), today.year, today, due_amount())
    overdue = sum(1 for m in months if m["is_overdue"])
    if overdue >= auto_archive_threshold():
        resident.is_archived = True
    elif resident.is_archived:
        resident.is_archived = False
    return resident.is_archived


def _validate_common(payload: dict, errors: list[str]) -> None:
    resident_id = str(payload.get("resident_id") or "").strip()
    if not resident_id:
        errors.append("Resident is required.")
    elif not resident_id.isdigit():
        errors.append("Resident id must be a number.")
    try:
        year = int(payload.get("year"))
        if year < MIN_YEAR or year > MAX_YEAR:
            errors.append(f"Year must be between {MIN_YEAR} and {MAX_YEAR}.")
    except (TypeError, ValueError):
        errors.append("Year must be a number.")
    method = str(payload.get("payment_method") or "").strip().upper()
    if method and method not in PAYMENT_METHODS:
        errors.append(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")


def _validate_month(value: Any, errors: list[str]) -> None:
    try:
        month = int(value)
        if month < 1 or month > 12:
            errors.append("Month must be between 1 and 12.")
    except (TypeError, ValueError):
        errors.append("Month must be a number.")


def _amount(value: Any) -> float:
    """float() that refuses inf/nan and booleans."""
    if isinstance(value, bool):
        raise TypeError("boolean amount")
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError("amount must be finite")
    return amount


def validate_payment_payload(payload: dict) -> list[str]:
    """Validate a single-month payment payload. Returns list of errors."""
    errors: list[str] = []
    _validate_common(payload, errors)
    _validate_month(payload.get("month"), errors)
    try:
        if _amount(payload.get("amount_paid")) < 0:
            errors.append("Amount paid must be positive.")
    except (TypeError, ValueError):
        errors.append("Amount paid must be a number.")
    return errors


def validate_batch_payload(payload: dict) -> list[str]:
    errors: list[str] = []
    _validate_common(payload, errors)
    payments = payload.get("payments")
    if not isinstance(payments, list) or not payments:
        errors.append("At least one month is required.")
        return errors
    for p in payments:
        if not isinstance(p, dict):
            errors.append("Each payment must be an object.")
            continue
        _validate_month(p.get("month"), errors)
        try:
            if _amount(p.get("amount_paid")) < 0.01:
                errors.append("Amount must be greater than 0.")
        except (TypeError, ValueError):
            errors.append("Amount paid must be a number.")
    return errors


def _month_due(s: "Session", resident_id: int, month: int, year: int) -> "MonthlyDue | None":
    from app.hoa.modules.monthly_dues.models import MonthlyDue

    return (
        s.query(MonthlyDue)
        .filter(MonthlyDue.resident_id == resident_id, MonthlyDue.month == month, MonthlyDue.year == year)
        .order_by(MonthlyDue.id.asc())
        .first()
    )


def _month_excess(s: "Session", resident_id: int, month: int, year: int, amount_paid: float) -> float:
    existing = _month_due(s, resident_id, month, year)
    already = existing.amount_paid if existing else 0.0
    return max(0.0, already + amount_paid - due_amount())


def _add_to_month(
    s: "Session",
    resident_id: int,
    month: int,
    year: int,
    amount: float,
    *,
    payment_method: str | None,
    notes: str | None,
    attachment: str | None,
) -> tuple["MonthlyDue", bool]:
    """Add amount to the month's record (created if missing); re-opens it as PENDING."""
    from app.hoa.modules.monthly_dues.models import MonthlyDue

    now = datetime.utcnow()
    due = _month_due(s, resident_id, month, year)
    existed = due is not None
    if due is None:
        due = MonthlyDue(resident_id=resident_id, month=month, year=year, amount_paid=0.0, created_at=now)
        s.add(due)
    due.amount_paid = (due.amount_paid or 0.0) + amount
    if payment_method:
        due.payment_method = payment_method
    due.notes = notes or due.notes
    due.attachment = attachment or due.attachment
    due.status = "PENDING"
    due.updated_at = now
    s.flush()
    return due, existed


def _carry_forward(s: "Session", due: "MonthlyDue", *, payment_method: str | None, notes: str) -> None:
    """
    Move anything above the monthly amount into the following month(s).
    Carrying past MAX_ADVANCE_MONTHS rolls the session back and raises BadRequest.
    """
    amount = due_amount()
    months = 0
    while due.amount_paid > amount:
        months += 1
        if months > MAX_ADVANCE_MONTHS:
            s.rollback()
            raise BadRequest(
                description=f"Advance payments can cover at most {MAX_ADVANCE_MONTHS} months ahead."
            )
        excess = due.amount_paid - amount
        due.amount_paid = amount
        month, year = _next_month(due.month, due.year)
        due, _ = _add_to_month(
            s, due.resident_id, month, year, excess, payment_method=payment_method, notes=notes, attachment=None
        )


def _excess_error(month: int, excess: float, with_month: bool = False) -> BadRequest:
    prefix = f"Payment for {month_name(month)}" if with_month else "Payment"
    return BadRequest(
        description=(
            f"{prefix} exceeds the month's balance by {excess:.2f}. "
            "Enable 'apply_advance' to submit an excess amount."
        )
    )


def _new_transaction(
    s: "Session", due: "MonthlyDue", amount: float, *, payment_method: str | None, notes: str | None, proof: str | None
) -> "PaymentTransaction":
    from app.hoa.modules.monthly_dues.models import PaymentTransaction

    t = PaymentTransaction(
        monthly_due_id=due.id,
        resident_id=due.resident_id,
        amount=amount,
        payment_method=payment_method,
        notes=notes,
        proof_of_payment=proof,
        status="PENDING",
        created_at=datetime.utcnow(),
    )
    s.add(t)
    s.flush()
    return t


def _get_resident(s: "Session", resident_id: int) -> "Resident":
    from app.hoa.modules.residents.models import Resident

    resident = s.get(Resident, resident_id)
    if resident is None:
        raise BadRequest(description="Resident not found.")
    return resident


def record_payment(
    s: "Session", payload: dict, user: "User", today: date | None = None
) -> tuple["MonthlyDue", "PaymentTransaction"]:
    """
    Record one payment toward a month. An amount above the month's remaining
    balance is rejected unless apply_advance is set, in which case the excess
    is carried into the following month.
    """
    resident = _get_resident(s, int(payload["resident_id"]))
    month = int(payload["month"])
    year = int(payload["year"])
    amount_paid = float(payload["amount_paid"])
    apply_advance = parse_bool(payload.get("apply_advance"))
    method = clean_str(payload.get("payment_method"))
    method = method.upper() if method else None
    notes = clean_str(payload.get("notes"))
    attachment = clean_str(payload.get("attachment"))

    excess = _month_excess(s, resident.id, month, year, amount_paid)
    if excess > 0 and not apply_advance:
        raise _excess_error(month, excess)

    due, existed = _add_to_month(
        s, resident.id, month, year, amount_paid, payment_method=method, notes=notes, attachment=attachment
    )
    transaction = _new_transaction(s, due, amount_paid, payment_method=method, notes=notes, proof=attachment)
    if apply_advance:
        _carry_forward(s, due, payment_method=method, notes=f"Advance payment from {month_name(month)} {year}")
    sync_archive_status(s, resident, today)
    s.commit()

    action = LogAction.PAYMENT_UPDATE if existed else LogAction.PAYMENT_CREATE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.MONTHLY_DUES,
        entity_id=due.id,
        entity_type="MonthlyDue",
        description=create_log_description(
            action,
            "Monthly Due Payment",
            f"{resident.full_name} - {month_name(month)} {year}",
            f"Amount: {amount_paid:.2f}",
        ),
        metadata={
            "resident_id": resident.id,
            "month": month,
            "year": year,
            "amount_paid": amount_paid,
            "payment_method": method,
        },
    )
    return due, transaction


def record_batch_payment(
    s: "Session", payload: dict, user: "User", today: date | None = None
) -> list[tuple["MonthlyDue", "PaymentTransaction"]]:
    """Record payments for several months of one year; all are validated before any is written."""
    resident = _get_resident(s, int(payload["resident_id"]))
    year = int(payload["year"])
    payments = [(int(p["month"]), float(p["amount_paid"])) for p in payload["payments"]]
    apply_advance = parse_bool(payload.get("apply_advance"))
    method = clean_str(payload.get("payment_method"))
    method = method.upper() if method else None
    notes = clean_str(payload.get("notes"))
    attachment = clean_str(payload.get("attachment"))

    if not apply_advance:
        # Entries for the same month count together.
        per_month: dict[int, float] = {}
        for month, amount_paid in payments:
            per_month[month] = per_month.get(month, 0.0) + amount_paid
        for month, amount_paid in sorted(per_month.items()):
            excess = _month_excess(s, resident.id, month, year, amount_paid)
            if excess > 0:
                raise _excess_error(month, excess, with_month=True)

    results = []
    for month, amount_paid in payments:
        due, _ = _add_to_month(
            s, resident.id, month, year, amount_paid, payment_method=method, notes=notes, attachment=attachment
        )
        results.append((due, _new_transaction(s, due, amount_paid, payment_method=method, notes=notes, proof=attachment)))

    if apply_advance:
        carry_note = f"Advance payment from batch payment ({len(payments)} months)"
        for due, _ in sorted(results, key=lambda r: r[0].month):
            _carry_forward(s, due, payment_method=method, notes=carry_note)
    sync_archive_status(s, resident, today)
    s.commit()

    total = sum(amount for _, amount in payments)
    months_list = ", ".join(calendar.month_abbr[m] for m, _ in payments)
    create_system_log(
        user_id=user.id,
        action=LogAction.PAYMENT_CREATE,
        module=LogModule.MONTHLY_DUES,
        entity_id=resident.id,
        entity_type="MonthlyDue",
        description=create_log_description(
            LogAction.PAYMENT_CREATE,
            "Batch Monthly Due Payment",
            f"{resident.full_name} - {months_list} {year}",
            f"Total: {total:.2f} ({len(payments)} months)",
        ),
        metadata={
            "resident_id": resident.id,
            "year": year,
            "months": [m for m, _ in payments],
            "total_amount": total,
            "payment_count": len(payments),
        },
    )
    return results


def list_transactions(s: "Session", resident_id: int, year: int | None = None) -> list["PaymentTransaction"]:
    """Transactions received for a household during a calendar year, newest first."""
    from app.hoa.modules.monthly_dues.models import PaymentTransaction

    year = year or date.today().year
    return (
        s.query(PaymentTransaction)
        .filter(
            PaymentTransaction.resident_id == resident_id,
            PaymentTransaction.created_at >= datetime(year, 1, 1),
            PaymentTransaction.created_at < datetime(year + 1, 1, 1),
        )
        .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
        .all()
    )


def _due_label(due: "MonthlyDue") -> str:
    name = due.resident.full_name if due.resident else str(due.resident_id)
    return f"{name} - {month_name(due.month)} {due.year}"


def update_due_status(s: "Session", due: "MonthlyDue", status: str, user: "User") -> "MonthlyDue":
    status = status.strip().upper()
    if status not in STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(STATUSES)}")
    due.status = status
    due.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.STATUS_CHANGE,
        module=LogModule.MONTHLY_DUES,
        entity_id=due.id,
        entity_type="MonthlyDue",
        description=create_log_description(
            LogAction.STATUS_CHANGE, "Monthly Due Status", _due_label(due), f"Status: {status}"
        ),
        metadata={"resident_id": due.resident_id, "month": due.month, "year": due.year, "status": status},
    )
    return due


def delete_due(s: "Session", due: "MonthlyDue", user: "User") -> dict[str, Any]:
    """Delete a month's record (and its transactions) for corrections."""
    snapshot = serialize(due) or {}
    label = _due_label(due)
    s.delete(due)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.PAYMENT_DELETE,
        module=LogModule.MONTHLY_DUES,
        entity_id=snapshot.get("id"),
        entity_type="MonthlyDue",
        description=create_log_description(
            LogAction.PAYMENT_DELETE, "Monthly Due Payment", label, f"Amount: {snapshot.get('amount_paid', 0):.2f}"
        ),
        metadata={
            "resident_id": snapshot.get("resident_id"),
            "month": snapshot.get("month"),
            "year": snapshot.get("year"),
            "amount_paid": snapshot.get("amount_paid"),
        },
    )
    return snapshot
