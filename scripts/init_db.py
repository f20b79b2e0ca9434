import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.hoa.models import Base, User
from app.hoa.rbac import Role


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    Base.metadata.create_all(engine)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> User:
    """
    Create missing tables and the SUPERADMIN account in an idempotent way.
    Does NOT overwrite an existing account's password; re-promotes it to SUPERADMIN.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@hoa.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///hoa.db").strip()

    with _session_scope(db_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                name="Super Admin",
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
            )
            s.add(user)
        user.role = Role.SUPERADMIN.value
        user.is_archived = False
        user.is_approved = True

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")
    return user


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
