from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.hoa.models import Base

if TYPE_CHECKING:
    from app.hoa.models import User


class AmenityReservation(Base):
    __tablename__ = "amenity_reservations"
    __table_args__ = (
        CheckConstraint("user_type IN ('RESIDENT','TENANT','VISITOR')", name="ck_amenity_reservations_user_type"),
        CheckConstraint("amenity IN ('COURT','GAZEBO','PARKING_AREA')", name="ck_amenity_reservations_amenity"),
        CheckConstraint(
            "status IN ('PENDING','APPROVED','REJECTED','CANCELLED')",
            name="ck_amenity_reservations_status",
        ),
        CheckConstraint(
            "payment_status IN ('PENDING','PAID','REFUNDED')",
            name="ck_amenity_reservations_payment_status",
        ),
        Index("idx_amenity_reservations_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_type: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    amenity: Mapped[str] = mapped_column(String(32), nullable=False)
    reservation_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)  # HH:MM
    number_of_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)

    payment_method: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_to_pay: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    amount_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    receipt_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User | None"] = relationship("User", lazy="selectin")

    @property
    def label(self) -> str:
        return f"{self.full_name} - {self.amenity}"
