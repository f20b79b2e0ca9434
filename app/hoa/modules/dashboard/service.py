from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.hoa.models import User
from app.hoa.modules.amenity_reservations.models import AmenityReservation
from app.hoa.modules.feedback.models import Feedback
from app.hoa.modules.monthly_dues.models import MonthlyDue
from app.hoa.modules.residents.models import Resident
from app.hoa.modules.vehicle_registrations.models import VehicleRegistration
from app.hoa.rbac import normalize_role
from app.hoa.utils import serialize

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


PERIODS = ("daily", "weekly", "monthly", "annually")


def period_range(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Inclusive [start, end] for the period containing now. Weeks start on Sunday."""
    now = now or datetime.utcnow()
    today = now.date()
    if period == "daily":
        start_day, end_day = today, today
    elif period == "weekly":
        start_day = today - timedelta(days=(today.weekday() + 1) % 7)
        end_day = today
    elif period == "monthly":
        start_day = today.replace(day=1)
        end_day = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    elif period == "annually":
        start_day = date(today.year, 1, 1)
        end_day = date(today.year, 12, 31)
    else:
        raise ValueError(f"period must be one of: {', '.join(PERIODS)}")
    return datetime.combine(start_day, time.min), datetime.combine(end_day, time.max)


def _grouped(s: "Session", column, *criteria) -> dict[str, int]:
    rows = s.query(column, func.count()).filter(*criteria).group_by(column).all()
    return {str(key): count for key, count in rows if key is not None}


def statistics(s: "Session", period: str = "monthly", now: datetime | None = None) -> dict[str, Any]:
    start, end = period_range(period, now)

    accounts_by_role: dict[str, int] = {}
    for role, count in _grouped(s, User.role, User.is_archived.is_(False)).items():
        key = normalize_role(role).value
        accounts_by_role[key] = accounts_by_role.get(key, 0) + count

    dues_in_period = MonthlyDue.created_at.between(start, end)
    total_dues = s.query(func.count(MonthlyDue.id)).filter(dues_in_period).scalar() or 0
    approved_dues = (
        s.query(func.count(MonthlyDue.id)).filter(dues_in_period, MonthlyDue.status == "APPROVED").scalar() or 0
    )
    dues_revenue = (
        s.query(func.coalesce(func.sum(MonthlyDue.amount_paid), 0.0))
        .filter(dues_in_period, MonthlyDue.status == "APPROVED")
        .scalar()
    )

    reservations_in_period = (
        AmenityReservation.is_archived.is_(False),
        AmenityReservation.created_at.between(start, end),
    )
    reservations_revenue = (
        s.query(func.coalesce(func.sum(AmenityReservation.amount_paid), 0.0))
        .filter(*reservations_in_period, AmenityReservation.status == "APPROVED")
        .scalar()
    )

    recent_dues = (
        s.query(MonthlyDue).filter(dues_in_period).order_by(MonthlyDue.created_at.desc()).limit(5).all()
    )
    recent_reservations = (
        s.query(AmenityReservation)
        .filter(*reservations_in_period)
        .order_by(AmenityReservation.created_at.desc())
        .limit(5)
        .all()
    )

    return {
        "accounts": {
            "total": s.query(func.count(User.id)).filter(User.is_archived.is_(False)).scalar() or 0,
            "by_role": accounts_by_role,
        },
        "residents": {
            "total": s.query(func.count(Resident.id)).filter(Resident.is_archived.is_(False)).scalar() or 0,
            "by_type": _grouped(s, Resident.type_of_residency, Resident.is_archived.is_(False)),
        },
        "vehicles": {
            "total": s.query(func.count(VehicleRegistration.id))
            .filter(VehicleRegistration.is_archived.is_(False))
            .scalar()
            or 0,
            "by_type": _grouped(s, VehicleRegistration.vehicle_type, VehicleRegistration.is_archived.is_(False)),
        },
        "monthly_dues": {
            "total": total_dues,
            "paid": approved_dues,
            "pending": total_dues - approved_dues,
            "revenue": float(dues_revenue or 0),
        },
        "reservations": {
            "total": s.query(func.count(AmenityReservation.id)).filter(*reservations_in_period).scalar() or 0,
            "by_status": _grouped(s, AmenityReservation.status, *reservations_in_period),
            "revenue": float(reservations_revenue or 0),
        },
        "feedback": {
            "total": s.query(func.count(Feedback.id)).scalar() or 0,
            "by_status": _grouped(s, Feedback.status),
        },
        "recent_monthly_dues": [
            dict(serialize(d) or {}, resident_name=d.resident.full_name if d.resident else None) for d in recent_dues
        ],
        "recent_reservations": [serialize(r) for r in recent_reservations],
        "period": period,
        "period_range": {"start": start.isoformat(), "end": end.isoformat()},
    }


def collection_by_month(s: "Session", year: int) -> list[dict[str, Any]]:
    """Dues recorded for each month of the year plus approved reservation payments by reservation month."""
    totals = {m: 0.0 for m in range(1, 13)}
    for month, amount in (
        s.query(MonthlyDue.month, func.sum(MonthlyDue.amount_paid))
        .filter(MonthlyDue.year == year)
        .group_by(MonthlyDue.month)
    ):
        totals[month] += float(amount or 0)

    for r in s.query(AmenityReservation).filter(
        AmenityReservation.is_archived.is_(False),
        AmenityReservation.status == "APPROVED",
        AmenityReservation.reservation_date >= date(year, 1, 1),
        AmenityReservation.reservation_date < date(year + 1, 1, 1),
    ):
        totals[r.reservation_date.month] += r.amount_paid or 0.0

    return [{"month": calendar.month_name[m], "collection": totals[m]} for m in range(1, 13)]
