from __future__ import annotations

from datetime import date

from flask import Blueprint, abort, request

from app.hoa.db import db_session
from app.hoa.modules.dashboard.service import PERIODS, collection_by_month, statistics
from app.hoa.rbac import Feature, require_feature

bp = Blueprint("dashboard", __name__)


@bp.get("/dashboard/statistics")
@require_feature(Feature.DASHBOARD)
def dashboard_statistics():
    period = (request.args.get("period") or "monthly").strip().lower()
    if period not in PERIODS:
        abort(400, description=f"period must be one of: {', '.join(PERIODS)}")
    return statistics(db_session(), period)


@bp.get("/dashboard/collection")
@require_feature(Feature.DASHBOARD)
def dashboard_collection():
    raw = (request.args.get("year") or str(date.today().year)).strip()
    if not raw.isdigit() or not 2000 <= int(raw) <= 3000:
        abort(400, description="year must be between 2000 and 3000.")
    return {"data": collection_by_month(db_session(), int(raw))}
