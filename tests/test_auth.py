from werkzeug.security import generate_password_hash

from app.hoa.db import session_scope
from app.hoa.models import SystemLog, User
from app.hoa.modules.residents.models import Resident

from conftest import PASSWORD, USERS


def test_login_returns_profile_and_features(client, app):
    r = client.post("/auth/login", json={"email": USERS["ACCOUNTING"], "password": PASSWORD})
    assert r.status_code == 200
    assert r.json["role"] == "ACCOUNTING"
    assert "TRANSACTIONS" in r.json["features"]
    assert "RESIDENTS" not in r.json["features"]

    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.action == "LOGIN").one()
        assert log.module == "AUTH"
        assert log.description == f"logged in Account ({USERS['ACCOUNTING']})"


def test_login_bad_password(client):
    r = client.post("/auth/login", json={"email": USERS["ADMIN"], "password": "wrong"})
    assert r.status_code == 401
    assert r.json["message"] == "Invalid credentials."


def test_login_refuses_archived_and_unapproved(client, app):
    with session_scope(app) as s:
        s.add(User(name="Old", email="old@example.com", password_hash=generate_password_hash(PASSWORD), is_archived=True))
        s.add(User(name="New", email="new@example.com", password_hash=generate_password_hash(PASSWORD), is_approved=False))

    assert client.post("/auth/login", json={"email": "old@example.com", "password": PASSWORD}).status_code == 401
    r = client.post("/auth/login", json={"email": "new@example.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json["message"] == "Your account is pending approval."


def test_login_rate_limited(client):
    for _ in range(5):
        client.post("/auth/login", json={"email": USERS["ADMIN"], "password": "wrong"})
    r = client.post("/auth/login", json={"email": USERS["ADMIN"], "password": PASSWORD})
    assert r.status_code == 429


def test_stored_role_is_normalized(client, app):
    with session_scope(app) as s:
        s.add(User(name="Lower", email="lower@example.com", password_hash=generate_password_hash(PASSWORD), role="admin"))
        s.add(User(name="Null", email="null@example.com", password_hash=generate_password_hash(PASSWORD), role=None))

    r = client.post("/auth/login", json={"email": "lower@example.com", "password": PASSWORD})
    assert r.json["role"] == "ADMIN"
    assert "RESIDENTS" in r.json["features"]

    client.post("/auth/logout", json={})
    r = client.post("/auth/login", json={"email": "null@example.com", "password": PASSWORD})
    assert r.json["role"] == "USER"
    assert r.json["features"] == []


def test_me_requires_login(client, login):
    assert client.get("/auth/me").status_code == 401
    login("USER")
    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json["email"] == USERS["USER"]


def test_logout(client, login, app):
    login("ADMIN")
    assert client.post("/auth/logout", json={}).status_code == 200
    assert client.get("/auth/me").status_code == 401
    with session_scope(app) as s:
        assert s.query(SystemLog).filter(SystemLog.action == "LOGOUT").count() == 1


def test_change_password(client, login, app):
    login("USER")
    r = client.post("/auth/change-password", json={"current_password": "nope", "new_password": "short"})
    assert r.status_code == 400
    assert "Current password is incorrect." in r.json["errors"]

    r = client.post(
        "/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-pass", "confirm_password": "brand-new-pass"},
    )
    assert r.status_code == 200

    client.post("/auth/logout", json={})
    assert client.post("/auth/login", json={"email": USERS["USER"], "password": "brand-new-pass"}).status_code == 200
    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.action == "PASSWORD_CHANGE").one()
        assert log.module == "SETTINGS"


def test_profile_update_and_email_conflict(client, login, app):
    login("USER")
    r = client.post("/auth/profile", json={"name": "Juan"})
    assert r.status_code == 200
    assert r.json["name"] == "Juan"
    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.action == "PROFILE_UPDATE").one()
        assert log.module == "SETTINGS"
        assert log.log_metadata == {"fields": ["name"]}

    r = client.post("/auth/profile", json={"email": USERS["ADMIN"]})
    assert r.status_code == 409

    r = client.post("/auth/profile", json={})
    assert r.status_code == 400


def _sign_up_payload(**overrides):
    payload = {
        "type_of_residency": "TENANT",
        "first_name": "Ana",
        "last_name": "Reyes",
        "sex": "FEMALE",
        "date_of_birth": "1990-01-01",
        "contact_number": "09170000000",
        "email_address": "ana@example.com",
        "block_no": "5",
        "lot_no": "2",
        "street": "Narra",
        "password": "ana-secret-1",
    }
    payload.update(overrides)
    return payload


def test_sign_up_creates_pending_account_and_household_head(client, app):
    r = client.post("/auth/sign-up", json=_sign_up_payload())
    assert r.status_code == 201
    assert r.json["is_approved"] is False

    with session_scope(app) as s:
        user = s.get(User, r.json["id"])
        resident = s.get(Resident, r.json["resident_id"])
        assert user.role == "USER"
        assert resident.is_head is True
        assert resident.user_id == user.id

    r = client.post("/auth/login", json={"email": "ana@example.com", "password": "ana-secret-1"})
    assert r.status_code == 403


def test_sign_up_duplicate_email(client):
    r = client.post("/auth/sign-up", json=_sign_up_payload(email_address=USERS["ADMIN"]))
    assert r.status_code == 409


def test_sign_up_validation(client):
    r = client.post("/auth/sign-up", json=_sign_up_payload(password="short", street=""))
    assert r.status_code == 400
    assert "Street is required." in r.json["errors"]


def test_sign_up_accepts_numeric_address_and_rejects_non_string_choices(client, app):
    r = client.post("/auth/sign-up", json=_sign_up_payload(block_no=5, lot_no=2, contact_number=9170000000))
    assert r.status_code == 201, r.json
    with session_scope(app) as s:
        resident = s.get(Resident, r.json["resident_id"])
        assert (resident.block_no, resident.lot_no, resident.contact_number) == ("5", "2", "9170000000")

    r = client.post(
        "/auth/sign-up",
        json=_sign_up_payload(email_address="other@example.com", type_of_residency=1, first_name=["Ana"], sex=None),
    )
    assert r.status_code == 400
    assert "Type of residency must be one of: RESIDENT, TENANT" in r.json["errors"]
    assert "Sex must be one of: MALE, FEMALE, PREFER_NOT_TO_SAY" in r.json["errors"]
