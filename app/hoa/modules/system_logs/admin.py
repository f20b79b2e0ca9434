from __future__ import annotations

from flask import Blueprint, abort, request

from app.hoa.audit import LogAction, LogModule
from app.hoa.db import db_session
from app.hoa.models import SystemLog
from app.hoa.rbac import Feature, require_feature
from app.hoa.utils import page_args, paginate, serialize

bp = Blueprint("system_logs", __name__)


def _dump(entry: SystemLog) -> dict:
    out = serialize(entry) or {}
    out["metadata"] = out.pop("log_metadata", None)
    user = entry.user
    out["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
    return out


def _enum_arg(name: str, enum_cls) -> str | None:
    value = (request.args.get(name) or "").strip().upper()
    if not value:
        return None
    try:
        return enum_cls(value).value
    except ValueError:
        abort(400, description=f"Unknown {name}: {value}")


@bp.get("/system-logs")
@require_feature(Feature.SYSTEM_LOGS)
def system_logs_list():
    q = db_session().query(SystemLog)
    module = _enum_arg("module", LogModule)
    action = _enum_arg("action", LogAction)
    if module:
        q = q.filter(SystemLog.module == module)
    if action:
        q = q.filter(SystemLog.action == action)
    user_id = (request.args.get("user_id") or "").strip()
    if user_id:
        if not user_id.isdigit():
            abort(400, description="user_id must be an integer.")
        q = q.filter(SystemLog.user_id == int(user_id))
    q = q.order_by(SystemLog.created_at.desc(), SystemLog.id.desc())
    page, limit = page_args(default_limit=50, max_limit=200)
    rows, pagination = paginate(q, page, limit)
    return {"data": [_dump(e) for e in rows], "pagination": pagination}


@bp.get("/system-logs/<int:log_id>")
@require_feature(Feature.SYSTEM_LOGS)
def system_log_detail(log_id: int):
    entry = db_session().get(SystemLog, log_id)
    if not entry:
        abort(404, description="System log not found.")
    return _dump(entry)
