import pytest
from werkzeug.security import generate_password_hash

from app.hoa import auth as hoa_auth
from app.hoa import create_app
from app.hoa.db import session_scope
from app.hoa.models import Base, User

PASSWORD = "pw-12345678"

USERS = {
    "SUPERADMIN": "super@example.com",
    "ADMIN": "admin@example.com",
    "ACCOUNTING": "accounting@example.com",
    "USER": "user@example.com",
}


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("MONTHLY_DUE_AMOUNT", "AUTO_ARCHIVE_OVERDUE_MONTHS"):
        monkeypatch.delenv(k, raising=False)
    hoa_auth._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        for role, email in USERS.items():
            s.add(User(name=role.title(), email=email, password_hash=generate_password_hash(PASSWORD), role=role))

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client):
    """Sign in as the seeded user for a role and attach the CSRF header to later requests."""

    def _login(role: str = "SUPERADMIN") -> dict:
        r = client.post("/auth/login", json={"email": USERS[role], "password": PASSWORD})
        assert r.status_code == 200, r.json
        token = client.get("/auth/csrf").json["csrf_token"]
        client.environ_base["HTTP_X_CSRF_TOKEN"] = token
        return r.json

    return _login


@pytest.fixture()
def user_id(app):
    def _user_id(role: str) -> int:
        with session_scope(app) as s:
            return s.query(User).filter(User.email == USERS[role]).one().id

    return _user_id


@pytest.fixture()
def resident_payload():
    def _payload(**overrides) -> dict:
        payload = {
            "type_of_residency": "RESIDENT",
            "first_name": "Maria",
            "last_name": "Santos",
            "sex": "FEMALE",
            "date_of_birth": "1985-04-12",
            "contact_number": "09171234567",
            "is_head": True,
            "block_no": "3",
            "lot_no": "12",
            "street": "Acacia",
        }
        payload.update(overrides)
        return payload

    return _payload
