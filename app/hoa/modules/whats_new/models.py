from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.hoa.models import Base


class WhatsNew(Base):
    """Community posts: blog entries, news, places to go and media."""

    __tablename__ = "whats_new"
    __table_args__ = (
        CheckConstraint("type IN ('BLOG','NEWS','GO_TO_PLACES','MEDIA_HUB')", name="ck_whats_new_type"),
        CheckConstraint("publication IN ('PUBLISHED','DRAFT')", name="ck_whats_new_publication"),
        Index("idx_whats_new_listing", "is_archived", "publication", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    publication: Mapped[str] = mapped_column(String(16), nullable=False, default="DRAFT")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
