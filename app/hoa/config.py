import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    monthly_due_amount: float
    auto_archive_overdue_months: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///hoa.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        monthly_due_amount=float(_getenv("MONTHLY_DUE_AMOUNT", "750")),
        auto_archive_overdue_months=int(_getenv("AUTO_ARCHIVE_OVERDUE_MONTHS", "6")),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "MONTHLY_DUE_AMOUNT": s.monthly_due_amount,
        "AUTO_ARCHIVE_OVERDUE_MONTHS": s.auto_archive_overdue_months,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        "JSON_SORT_KEYS": False,
        # request body limit (1MB); attachments are passed as URLs
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
