import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from app.hoa.models import User
from scripts import init_db


def test_seed_creates_superadmin_once(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'seed.db'}"
    monkeypatch.setenv("ADMIN_EMAIL", "Root@HOA.local")
    monkeypatch.setenv("ADMIN_PASSWORD", "first-password")
    init_db.seed_only(database_url=db_url)

    # A second run re-promotes the account but keeps its password.
    engine = create_engine(db_url, future=True)
    with Session(engine) as s:
        user = s.query(User).filter(User.email == "root@hoa.local").one()
        user.role = "USER"
        user.is_archived = True
        s.commit()

    monkeypatch.setenv("ADMIN_PASSWORD", "second-password")
    init_db.seed_only(database_url=db_url)

    with Session(engine) as s:
        [user] = s.query(User).all()
        assert user.role == "SUPERADMIN"
        assert user.is_archived is False
        assert check_password_hash(user.password_hash, "first-password")
    engine.dispose()


def test_release_requires_database_url(monkeypatch):
    from scripts import release

    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        release.run_release()

    monkeypatch.setenv("DATABASE_URL", "sqlite:///prod.db")
    monkeypatch.setenv("ENV", "production")
    with pytest.raises(RuntimeError, match="sqlite"):
        release.run_release()


def test_parse_port():
    from scripts.start import parse_port

    assert parse_port(None) == 8080
    assert parse_port(" 5000 ") == 5000
    with pytest.raises(ValueError):
        parse_port("70000")
    with pytest.raises(ValueError):
        parse_port("http")


def test_gunicorn_argv_reads_concurrency_and_log_level():
    from scripts.start import gunicorn_argv

    argv = gunicorn_argv(5000, {"WEB_CONCURRENCY": "4", "LOG_LEVEL": "DEBUG"})
    assert argv[:2] == ["gunicorn", "app.wsgi:app"]
    assert argv[argv.index("--bind") + 1] == "0.0.0.0:5000"
    assert argv[argv.index("--workers") + 1] == "4"
    assert argv[argv.index("--log-level") + 1] == "debug"
    defaults = gunicorn_argv(80, {})
    assert defaults[defaults.index("--workers") + 1] == "2"
