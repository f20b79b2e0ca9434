from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from flask import abort, request
from sqlalchemy import inspect as sa_inspect


def serialize(obj: Any, *, include: tuple[str, ...] = ()) -> dict[str, Any] | None:
    """Column values of an ORM object as a JSON-ready dict (plus optional relationship names)."""
    if obj is None:
        return None
    exclude = set(getattr(obj, "__serialize_exclude__", ()))
    out: dict[str, Any] = {}
    for attr in sa_inspect(obj).mapper.column_attrs:
        if attr.key in exclude:
            continue
        out[attr.key] = _jsonable(getattr(obj, attr.key))
    for name in include:
        value = getattr(obj, name)
        if isinstance(value, list):
            out[name] = [serialize(v) for v in value]
        else:
            out[name] = serialize(value)
    return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    return value


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict() if request.form else {}
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object.")
    return data


def parse_date(s: Any) -> date | None:
    """Parse YYYY-MM-DD (or a full ISO datetime) string."""
    if s is None or isinstance(s, date):
        return s
    s = str(s).strip()
    if not s:
        return None
    if len(s) > 10:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    return date.fromisoformat(s)


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def clean_str(value: Any) -> str | None:
    """Strip a string; empty becomes None."""
    if value is None:
        return None
    return str(value).strip() or None


def page_args(default_limit: int = 10, max_limit: int = 100) -> tuple[int, int]:
    try:
        page = max(1, int(request.args.get("page") or 1))
        limit = int(request.args.get("limit") or default_limit)
    except ValueError:
        abort(400, description="page and limit must be integers.")
    return page, min(max(1, limit), max_limit)


def paginate(q, page: int, limit: int) -> tuple[list, dict[str, int]]:
    total = q.order_by(None).count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def validation_error(errors: list[str]) -> tuple[dict[str, Any], int]:
    return {"error": "bad_request", "message": errors[0], "errors": errors}, 400
