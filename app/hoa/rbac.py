"""
Role-based access control.

Roles are a closed set; access is set membership, not hierarchy. The feature
table below is shared by enforcement (require_feature) and by the front end
(GET /auth/me/features), and is read-only at runtime.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum
from functools import wraps
from types import MappingProxyType
from typing import Any

from flask import abort, g
from werkzeug.exceptions import Forbidden


class Role(str, Enum):
    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    ACCOUNTING = "ACCOUNTING"
    USER = "USER"


DEFAULT_ROLE = Role.USER
STAFF_ROLES = (Role.SUPERADMIN, Role.ADMIN, Role.ACCOUNTING)


class Feature(str, Enum):
    DASHBOARD = "DASHBOARD"
    ACCOUNTS = "ACCOUNTS"
    RESIDENTS = "RESIDENTS"
    ANNOUNCEMENTS = "ANNOUNCEMENTS"
    ANNOUNCEMENTS_PUBLISH = "ANNOUNCEMENTS_PUBLISH"
    WHATS_NEW = "WHATS_NEW"
    WHATS_NEW_PUBLISH = "WHATS_NEW_PUBLISH"
    TRANSACTIONS = "TRANSACTIONS"
    VEHICLE_REGISTRATIONS = "VEHICLE_REGISTRATIONS"
    CONTACT = "CONTACT"
    FEEDBACK = "FEEDBACK"
    MAPS = "MAPS"
    SETTINGS = "SETTINGS"
    SYSTEM_LOGS = "SYSTEM_LOGS"
    NOTIFICATIONS = "NOTIFICATIONS"


FEATURE_ACCESS: MappingProxyType[Feature, tuple[Role, ...]] = MappingProxyType(
    {
        Feature.DASHBOARD: (Role.SUPERADMIN, Role.ADMIN, Role.ACCOUNTING),
        Feature.ACCOUNTS: (Role.SUPERADMIN, Role.ADMIN),
        Feature.RESIDENTS: (Role.SUPERADMIN, Role.ADMIN),
        Feature.ANNOUNCEMENTS: (Role.SUPERADMIN, Role.ADMIN),
        Feature.ANNOUNCEMENTS_PUBLISH: (Role.SUPERADMIN,),
        Feature.WHATS_NEW: (Role.SUPERADMIN, Role.ADMIN),
        Feature.WHATS_NEW_PUBLISH: (Role.SUPERADMIN,),
        Feature.TRANSACTIONS: (Role.SUPERADMIN, Role.ACCOUNTING),
        Feature.VEHICLE_REGISTRATIONS: (Role.SUPERADMIN, Role.ACCOUNTING),
        Feature.CONTACT: (Role.SUPERADMIN,),
        Feature.FEEDBACK: (Role.SUPERADMIN,),
        Feature.MAPS: (Role.SUPERADMIN,),
        Feature.SETTINGS: (Role.SUPERADMIN,),
        Feature.SYSTEM_LOGS: (Role.SUPERADMIN,),
        Feature.NOTIFICATIONS: (Role.SUPERADMIN, Role.ADMIN),
    }
)


def normalize_role(role: str | Role | None) -> Role:
    """Coerce any stored role value into a known Role (USER when unknown)."""
    if isinstance(role, Role):
        return role
    if not role or not isinstance(role, str):
        return DEFAULT_ROLE
    try:
        return Role(role.upper())
    except ValueError:
        return DEFAULT_ROLE


def roles_for(feature: Feature | str) -> tuple[Role, ...]:
    """
    Roles permitted for a feature area.
    Unknown feature names raise KeyError (fail-closed).
    """
    if not isinstance(feature, Feature):
        try:
            feature = Feature(feature)
        except ValueError:
            raise KeyError(feature) from None
    return FEATURE_ACCESS[feature]


def has_required_role(role: str | Role | None, allowed: Iterable[Role | str] | None = None) -> bool:
    allowed_set = {Role(r) for r in (allowed or ())}
    if not allowed_set:
        return True
    return normalize_role(role) in allowed_set


def can_access(role: str | Role | None, feature: Feature | str) -> bool:
    return has_required_role(role, roles_for(feature))


def accessible_features(role: str | Role | None) -> list[str]:
    return [f.value for f, roles in FEATURE_ACCESS.items() if normalize_role(role) in roles]


def check_roles(
    role: str | Role | None,
    allowed: Iterable[Role | str] | None = None,
    message: str = "You do not have permission to perform this action.",
) -> Role:
    """Raise Forbidden unless role passes; return the normalized role."""
    if not has_required_role(role, allowed):
        raise Forbidden(description=message)
    return normalize_role(role)


def guarded(
    role: str | Role | None,
    allowed: Iterable[Role | str] | None,
    fn: Callable[..., Any],
    *args: Any,
    message: str = "You do not have permission to perform this action.",
    **kwargs: Any,
) -> Any:
    check_roles(role, allowed, message)
    return fn(*args, **kwargs)


def require_roles(
    allowed: Iterable[Role | str] | None = None,
    message: str = "You do not have permission to perform this action.",
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    allowed_roles = tuple(Role(r) for r in (allowed or ()))

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = getattr(g, "current_user", None)
            if not user or user.is_archived:
                abort(401, description="Authentication required.")
            check_roles(user.role, allowed_roles, message)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_feature(
    feature: Feature, message: str | None = None
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    msg = message or f"You do not have permission to access {feature.value.lower().replace('_', ' ')}."
    return require_roles(roles_for(feature), msg)
