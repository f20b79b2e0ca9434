from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from flask import current_app, has_request_context, request

from app.hoa.db import new_session
from app.hoa.models import SystemLog

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class LogAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ARCHIVE = "ARCHIVE"
    RETRIEVE = "RETRIEVE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
    PAYMENT_CREATE = "PAYMENT_CREATE"
    PAYMENT_UPDATE = "PAYMENT_UPDATE"
    PAYMENT_DELETE = "PAYMENT_DELETE"


class LogModule(str, Enum):
    ACCOUNTS = "ACCOUNTS"
    RESIDENTS = "RESIDENTS"
    VEHICLE_REGISTRATIONS = "VEHICLE_REGISTRATIONS"
    ANNOUNCEMENTS = "ANNOUNCEMENTS"
    AMENITY_RESERVATIONS = "AMENITY_RESERVATIONS"
    MAPS = "MAPS"
    MONTHLY_DUES = "MONTHLY_DUES"
    SETTINGS = "SETTINGS"
    AUTH = "AUTH"
    WHATS_NEW = "WHATS_NEW"


_ACTION_TEXT = {
    LogAction.CREATE: "created",
    LogAction.UPDATE: "updated",
    LogAction.DELETE: "deleted",
    LogAction.ARCHIVE: "archived",
    LogAction.RETRIEVE: "retrieved",
    LogAction.LOGIN: "logged in",
    LogAction.LOGOUT: "logged out",
    LogAction.PASSWORD_CHANGE: "changed password",
    LogAction.PROFILE_UPDATE: "updated profile",
    LogAction.STATUS_CHANGE: "changed status",
    LogAction.PAYMENT_CREATE: "created payment",
    LogAction.PAYMENT_UPDATE: "updated payment",
    LogAction.PAYMENT_DELETE: "deleted payment",
}


def create_log_description(
    action: LogAction,
    entity_type: str,
    entity_identifier: str | None,
    details: str | None = None,
) -> str:
    """
    e.g. "updated Account (user@example.com) - Changed role to ADMIN"
    """
    description = f"{_ACTION_TEXT[LogAction(action)]} {entity_type}"
    if entity_identifier:
        description += f" ({entity_identifier})"
    if details:
        description += f" - {details}"
    return description


def request_metadata() -> tuple[str, str]:
    """(ip_address, user_agent) of the current request, "Unknown" when absent."""
    if not has_request_context():
        return UNKNOWN, UNKNOWN
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    ip = forwarded or (request.headers.get("X-Real-IP") or "").strip() or UNKNOWN
    user_agent = (request.headers.get("User-Agent") or "").strip() or UNKNOWN
    return ip, user_agent


def _write_entry(entry: SystemLog) -> SystemLog:
    # Own session: the audit write never shares a transaction with the business mutation.
    s = new_session(current_app._get_current_object())  # type: ignore[attr-defined]
    try:
        s.add(entry)
        s.commit()
        return entry
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def create_system_log(
    *,
    user_id: int | None,
    action: LogAction,
    module: LogModule,
    description: str,
    entity_id: str | int | None = None,
    entity_type: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> SystemLog | None:
    """
    Best-effort append of one audit entry. Call only after the mutation has committed.

    Returns the stored entry, or None when the write failed. Failures are reported
    to the operational log and never raised to the caller.
    """
    ip_address, user_agent = request_metadata()
    try:
        entry = SystemLog(
            user_id=user_id,
            action=LogAction(action).value,
            module=LogModule(module).value,
            entity_id=str(entity_id) if entity_id is not None else None,
            entity_type=entity_type,
            description=description,
            log_metadata=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return _write_entry(entry)
    except Exception:
        logger.exception(
            "Failed to create system log (action=%s module=%s entity_id=%s)", action, module, entity_id
        )
        return None
