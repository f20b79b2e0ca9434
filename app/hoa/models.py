from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Stored loosely; always read through app.hoa.rbac.normalize_role.
    role: Mapped[str | None] = mapped_column(String(32), nullable=True, default="USER")

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    __serialize_exclude__ = ("password_hash",)


class SystemLog(Base):
    """
    Append-only audit trail entry.
    Written by app.hoa.audit.create_system_log after the triggering mutation commits.
    """

    __tablename__ = "system_logs"
    __table_args__ = (
        Index("idx_system_logs_created_at", "created_at"),
        Index("idx_system_logs_module", "module"),
        Index("idx_system_logs_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    action: Mapped[str] = mapped_column(String(32), nullable=False)  # e.g. "ARCHIVE"
    module: Mapped[str] = mapped_column(String(64), nullable=False)  # e.g. "RESIDENTS"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)  # string for flexibility (uuid/int)
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Resident"
    description: Mapped[str] = mapped_column(Text, nullable=False)
    log_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="Unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="Unknown")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped[User | None] = relationship(lazy="selectin")


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.hoa.modules.residents.models import Resident  # noqa: E402,F401
from app.hoa.modules.vehicle_registrations.models import VehicleRegistration  # noqa: E402,F401
from app.hoa.modules.amenity_reservations.models import AmenityReservation  # noqa: E402,F401
from app.hoa.modules.monthly_dues.models import MonthlyDue, PaymentTransaction  # noqa: E402,F401
from app.hoa.modules.announcements.models import Announcement  # noqa: E402,F401
from app.hoa.modules.contact.models import Contact  # noqa: E402,F401
from app.hoa.modules.feedback.models import Feedback  # noqa: E402,F401
from app.hoa.modules.whats_new.models import WhatsNew  # noqa: E402,F401
from app.hoa.modules.maps.models import Lot  # noqa: E402,F401
