from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.utils import clean_str

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hoa.models import User
    from app.hoa.modules.maps.models import Lot


OCCUPIED = "Occupied"
_REQUIRED = (
    ("block_no", "Block"),
    ("street", "Street"),
    ("house_type", "House type"),
    ("payment_method", "Payment method"),
    ("availability", "Availability"),
)
_NUMBERS = (("lot_size", "Lot size"), ("min_price", "Minimum price"), ("max_price", "Maximum price"))


def _number(value) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean number")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("number must be finite")
    return number


def validate_lot_payload(payload: dict) -> list[str]:
    """Validate map/lot payload. Returns list of errors."""
    errors = []
    for key, label in _REQUIRED:
        if not str(payload.get(key) or "").strip():
            errors.append(f"{label} is required.")
    numbers = {}
    for key, label in _NUMBERS:
        try:
            numbers[key] = _number(payload.get(key))
            if numbers[key] < 0:
                errors.append(f"{label} must not be negative.")
        except (TypeError, ValueError):
            errors.append(f"{label} must be a number.")
    if "min_price" in numbers and "max_price" in numbers and numbers["max_price"] < numbers["min_price"]:
        errors.append("Maximum price must not be below the minimum price.")
    return errors


def _apply_payload(lot: "Lot", payload: dict) -> None:
    lot.block_no = str(payload["block_no"]).strip()
    lot.lot_no = clean_str(payload.get("lot_no"))
    lot.street = str(payload["street"]).strip()
    lot.lot_size = _number(payload["lot_size"])
    lot.house_type = str(payload["house_type"]).strip()
    lot.min_price = _number(payload["min_price"])
    lot.max_price = _number(payload["max_price"])
    lot.payment_method = str(payload["payment_method"]).strip()
    lot.attachment_url = clean_str(payload.get("attachment_url"))
    lot.availability = str(payload["availability"]).strip()
    lot.notes = clean_str(payload.get("notes"))


def find_lot(s: "Session", block_no: str, lot_no: str | None, street: str) -> "Lot | None":
    from app.hoa.modules.maps.models import Lot

    return (
        s.query(Lot)
        .filter(
            Lot.block_no == block_no,
            Lot.lot_no.is_(None) if lot_no is None else Lot.lot_no == lot_no,
            Lot.street == street,
        )
        .order_by(Lot.id.asc())
        .first()
    )


def occupy_lot(s: "Session", block_no: str, lot_no: str | None, street: str) -> "Lot":
    """
    Mark the household's lot occupied, adding it to the map when missing.
    Caller commits.
    """
    from app.hoa.modules.maps.models import Lot

    lot = find_lot(s, block_no, lot_no, street)
    now = datetime.utcnow()
    if lot is None:
        lot = Lot(block_no=block_no, lot_no=lot_no, street=street, availability=OCCUPIED, created_at=now, updated_at=now)
        s.add(lot)
    elif lot.is_available:
        lot.availability = OCCUPIED
        lot.updated_at = now
    return lot


def create_lot(s: "Session", payload: dict, user: "User") -> "Lot":
    from app.hoa.modules.maps.models import Lot

    now = datetime.utcnow()
    lot = Lot(created_at=now, updated_at=now)
    _apply_payload(lot, payload)
    s.add(lot)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.MAPS,
        entity_id=lot.id,
        entity_type="Map",
        description=create_log_description(LogAction.CREATE, "Map/Property", lot.location),
        metadata={"block_no": lot.block_no, "lot_no": lot.lot_no, "street": lot.street},
    )
    return lot


def update_lot(s: "Session", lot: "Lot", payload: dict, user: "User") -> "Lot":
    old_availability = lot.availability
    _apply_payload(lot, payload)
    lot.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.MAPS,
        entity_id=lot.id,
        entity_type="Map",
        description=create_log_description(LogAction.UPDATE, "Map/Property", lot.location),
        metadata={"old_availability": old_availability, "new_availability": lot.availability},
    )
    return lot
