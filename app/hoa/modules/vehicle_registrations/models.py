from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.hoa.models import Base

if TYPE_CHECKING:
    from app.hoa.modules.residents.models import Resident


class VehicleRegistration(Base):
    __tablename__ = "vehicle_registrations"
    __table_args__ = (
        CheckConstraint("vehicle_type IN ('SEDAN','SUV','TRUCK','MOTORCYCLE')", name="ck_vehicle_registrations_type"),
        CheckConstraint(
            "relationship_to_vehicle IN ('OWNER','FAMILY_MEMBER','COMPANY_DRIVER')",
            name="ck_vehicle_registrations_relationship",
        ),
        Index("idx_vehicle_registrations_plate_number", "plate_number"),
        Index("idx_vehicle_registrations_resident_id", "resident_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    brand: Mapped[str] = mapped_column(String(128), nullable=False)
    model: Mapped[str] = mapped_column(String(128), nullable=False)
    year_of_manufacture: Mapped[int] = mapped_column(Integer, nullable=False)
    color: Mapped[str] = mapped_column(String(64), nullable=False)
    plate_number: Mapped[str] = mapped_column(String(32), nullable=False)
    vehicle_type: Mapped[str] = mapped_column(String(32), nullable=False)
    chassis_number: Mapped[str] = mapped_column(String(64), nullable=False)
    engine_number: Mapped[str] = mapped_column(String(64), nullable=False)
    license_number: Mapped[str] = mapped_column(String(64), nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False)
    relationship_to_vehicle: Mapped[str] = mapped_column(String(32), nullable=False)

    # OR/CR document references (URL or storage key)
    or_attachment: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    cr_attachment: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    resident_id: Mapped[int | None] = mapped_column(ForeignKey("residents.id", ondelete="SET NULL"), nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    resident: Mapped["Resident | None"] = relationship("Resident", lazy="selectin")

    @property
    def label(self) -> str:
        return f"{self.brand} {self.model} ({self.plate_number})"
