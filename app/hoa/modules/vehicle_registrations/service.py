from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import BadRequest

from app.hoa.audit import LogAction, LogModule, create_log_description, create_system_log
from app.hoa.utils import clean_str, parse_date

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hoa.models import User
    from app.hoa.modules.vehicle_registrations.models import VehicleRegistration


VEHICLE_TYPES = ("SEDAN", "SUV", "TRUCK", "MOTORCYCLE")
RELATIONSHIPS = ("OWNER", "FAMILY_MEMBER", "COMPANY_DRIVER")
_REQUIRED = (
    ("brand", "Brand"),
    ("model", "Model"),
    ("color", "Color"),
    ("plate_number", "Plate number"),
    ("chassis_number", "Chassis number"),
    ("engine_number", "Engine number"),
    ("license_number", "License number"),
)


def validate_vehicle_payload(payload: dict) -> list[str]:
    """Validate vehicle registration payload. Returns list of errors."""
    errors = []
    for key, label in _REQUIRED:
        if not str(payload.get(key) or "").strip():
            errors.append(f"{label} is required.")

    max_year = date.today().year + 1
    try:
        year = int(payload.get("year_of_manufacture"))
        if year < 1900 or year > max_year:
            errors.append(f"Year of manufacture must be between 1900 and {max_year}.")
    except (TypeError, ValueError):
        errors.append("Year of manufacture must be a number.")

    if str(payload.get("vehicle_type") or "").strip().upper() not in VEHICLE_TYPES:
        errors.append(f"Vehicle type must be one of: {', '.join(VEHICLE_TYPES)}")
    if str(payload.get("relationship_to_vehicle") or "").strip().upper() not in RELATIONSHIPS:
        errors.append(f"Relationship to vehicle must be one of: {', '.join(RELATIONSHIPS)}")

    try:
        if not parse_date(payload.get("expiry_date")):
            errors.append("Expiry date is required.")
    except ValueError:
        errors.append("Expiry date must be YYYY-MM-DD.")

    resident_id = str(payload.get("resident_id") or "").strip()
    if resident_id and not resident_id.isdigit():
        errors.append("Resident id must be a number.")
    return errors


def _resolve_resident_id(s: "Session", payload: dict) -> int | None:
    from app.hoa.modules.residents.models import Resident

    resident_id = clean_str(payload.get("resident_id"))
    if not resident_id:
        return None
    if s.get(Resident, int(resident_id)) is None:
        raise BadRequest(description="Resident not found.")
    return int(resident_id)


def _apply_payload(s: "Session", vehicle: "VehicleRegistration", payload: dict) -> None:
    resident_id = _resolve_resident_id(s, payload)
    vehicle.brand = str(payload.get("brand")).strip()
    vehicle.model = str(payload.get("model")).strip()
    vehicle.year_of_manufacture = int(payload.get("year_of_manufacture"))
    vehicle.color = str(payload.get("color")).strip()
    vehicle.plate_number = str(payload.get("plate_number")).strip().upper()
    vehicle.vehicle_type = str(payload.get("vehicle_type")).strip().upper()
    vehicle.chassis_number = str(payload.get("chassis_number")).strip()
    vehicle.engine_number = str(payload.get("engine_number")).strip()
    vehicle.license_number = str(payload.get("license_number")).strip()
    vehicle.expiry_date = parse_date(payload.get("expiry_date"))  # type: ignore[assignment]
    vehicle.relationship_to_vehicle = str(payload.get("relationship_to_vehicle")).strip().upper()
    vehicle.or_attachment = clean_str(payload.get("or_attachment"))
    vehicle.cr_attachment = clean_str(payload.get("cr_attachment"))
    vehicle.resident_id = resident_id


def create_vehicle(s: "Session", payload: dict, user: "User") -> "VehicleRegistration":
    from app.hoa.modules.vehicle_registrations.models import VehicleRegistration

    now = datetime.utcnow()
    vehicle = VehicleRegistration(created_at=now, updated_at=now)
    _apply_payload(s, vehicle, payload)
    s.add(vehicle)
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.CREATE,
        module=LogModule.VEHICLE_REGISTRATIONS,
        entity_id=vehicle.id,
        entity_type="VehicleRegistration",
        description=create_log_description(LogAction.CREATE, "Vehicle Registration", vehicle.label),
        metadata={"plate_number": vehicle.plate_number, "vehicle_type": vehicle.vehicle_type},
    )
    return vehicle


def update_vehicle(s: "Session", vehicle: "VehicleRegistration", payload: dict, user: "User") -> "VehicleRegistration":
    _apply_payload(s, vehicle, payload)
    vehicle.updated_at = datetime.utcnow()
    s.commit()

    create_system_log(
        user_id=user.id,
        action=LogAction.UPDATE,
        module=LogModule.VEHICLE_REGISTRATIONS,
        entity_id=vehicle.id,
        entity_type="VehicleRegistration",
        description=create_log_description(LogAction.UPDATE, "Vehicle Registration", vehicle.label),
    )
    return vehicle


def set_vehicle_archived(
    s: "Session", vehicle: "VehicleRegistration", is_archived: bool, user: "User"
) -> "VehicleRegistration":
    vehicle.is_archived = is_archived
    vehicle.updated_at = datetime.utcnow()
    s.commit()

    action = LogAction.ARCHIVE if is_archived else LogAction.RETRIEVE
    create_system_log(
        user_id=user.id,
        action=action,
        module=LogModule.VEHICLE_REGISTRATIONS,
        entity_id=vehicle.id,
        entity_type="VehicleRegistration",
        description=create_log_description(action, "Vehicle Registration", vehicle.label),
    )
    return vehicle
