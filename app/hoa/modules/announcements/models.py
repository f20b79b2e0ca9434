from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.hoa.models import Base


class Announcement(Base):
    __tablename__ = "announcements"
    __table_args__ = (
        CheckConstraint(
            "category IN ('IMPORTANT','EMERGENCY','UTILITIES','OTHER')", name="ck_announcements_category"
        ),
        CheckConstraint("publication IN ('PUBLISHED','DRAFT')", name="ck_announcements_publication"),
        Index("idx_announcements_listing", "is_archived", "is_pin", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    is_for_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    attachment: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    schedule: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    is_pin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    publication: Mapped[str] = mapped_column(String(16), nullable=False, default="DRAFT")

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
