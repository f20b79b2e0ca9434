"""Role normalization and the authorization guard."""
from types import SimpleNamespace

import pytest
from flask import Flask, g
from werkzeug.exceptions import Forbidden, Unauthorized

from app.hoa.rbac import (
    FEATURE_ACCESS,
    Feature,
    Role,
    accessible_features,
    can_access,
    check_roles,
    guarded,
    has_required_role,
    normalize_role,
    require_feature,
    require_roles,
    roles_for,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("admin", Role.ADMIN),
        ("ADMIN", Role.ADMIN),
        ("SuperAdmin", Role.SUPERADMIN),
        ("accounting", Role.ACCOUNTING),
        ("user", Role.USER),
        (Role.ACCOUNTING, Role.ACCOUNTING),
        (None, Role.USER),
        ("", Role.USER),
        ("janitor", Role.USER),
        (42, Role.USER),
    ],
)
def test_normalize_role(raw, expected):
    assert normalize_role(raw) is expected


def test_normalize_role_is_idempotent():
    for raw in ("admin", "Accounting", None, "nonsense", "SUPERADMIN"):
        once = normalize_role(raw)
        assert normalize_role(once) is once
        assert normalize_role(once.value) is once


def test_admin_lowercase_allowed_for_admin_and_superadmin():
    assert has_required_role("admin", ["ADMIN", "SUPERADMIN"]) is True


def test_missing_role_forbidden_for_superadmin_only():
    assert has_required_role(None, ["SUPERADMIN"]) is False
    with pytest.raises(Forbidden):
        check_roles(None, ["SUPERADMIN"])


def test_empty_allowed_list_allows_any_role():
    for raw in (None, "", "USER", "ADMIN", "garbage"):
        assert has_required_role(raw, []) is True
        assert has_required_role(raw, None) is True


def test_unknown_role_behaves_as_user():
    assert has_required_role("janitor", [Role.USER]) is True
    assert has_required_role("janitor", [Role.ADMIN]) is False


def test_allowed_list_with_unknown_name_is_rejected():
    with pytest.raises(ValueError):
        has_required_role("ADMIN", ["ADMIN", "JANITOR"])


def test_feature_table():
    assert roles_for(Feature.TRANSACTIONS) == (Role.SUPERADMIN, Role.ACCOUNTING)
    assert roles_for("SYSTEM_LOGS") == (Role.SUPERADMIN,)
    assert can_access("accounting", Feature.VEHICLE_REGISTRATIONS)
    assert not can_access("admin", Feature.VEHICLE_REGISTRATIONS)
    assert not can_access("USER", Feature.DASHBOARD)


def test_unknown_feature_fails_closed():
    with pytest.raises(KeyError):
        roles_for("PARKING_TICKETS")


def test_feature_table_is_read_only():
    with pytest.raises(TypeError):
        FEATURE_ACCESS[Feature.SETTINGS] = (Role.USER,)  # type: ignore[index]


def test_accessible_features():
    assert accessible_features("USER") == []
    assert accessible_features("superadmin") == [f.value for f in FEATURE_ACCESS]
    accounting = accessible_features("ACCOUNTING")
    assert "TRANSACTIONS" in accounting
    assert "RESIDENTS" not in accounting


def test_check_roles_message_and_result():
    assert check_roles("admin", [Role.ADMIN]) is Role.ADMIN
    with pytest.raises(Forbidden) as exc:
        check_roles("USER", [Role.SUPERADMIN], "Nope.")
    assert exc.value.description == "Nope."


def test_guarded_rejection_never_runs_operation():
    calls = []

    def mutate(x):
        calls.append(x)
        return x * 2

    with pytest.raises(Forbidden):
        guarded("ACCOUNTING", [Role.SUPERADMIN], mutate, 1)
    assert calls == []

    assert guarded("superadmin", [Role.SUPERADMIN], mutate, 2) == 4
    assert calls == [2]


@pytest.fixture()
def bare_app():
    return Flask(__name__)


def test_require_roles_rejection_never_invokes_view(bare_app):
    calls = []

    @require_roles([Role.SUPERADMIN])
    def view():
        calls.append(1)
        return "ok"

    with bare_app.test_request_context("/"):
        g.current_user = SimpleNamespace(id=1, role="ADMIN", is_archived=False)
        with pytest.raises(Forbidden):
            view()
    assert calls == []

    with bare_app.test_request_context("/"):
        g.current_user = SimpleNamespace(id=1, role="superadmin", is_archived=False)
        assert view() == "ok"
    assert calls == [1]


def test_require_roles_without_user_is_unauthorized(bare_app):
    calls = []

    @require_roles()
    def view():
        calls.append(1)

    with bare_app.test_request_context("/"):
        g.current_user = None
        with pytest.raises(Unauthorized):
            view()
        g.current_user = SimpleNamespace(id=1, role="SUPERADMIN", is_archived=True)
        with pytest.raises(Unauthorized):
            view()
    assert calls == []


def test_require_feature_default_message(bare_app):
    @require_feature(Feature.SYSTEM_LOGS)
    def view():
        return "ok"

    with bare_app.test_request_context("/"):
        g.current_user = SimpleNamespace(id=1, role="ADMIN", is_archived=False)
        with pytest.raises(Forbidden) as exc:
            view()
    assert "system logs" in exc.value.description
