from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.hoa.models import Base


class Resident(Base):
    __tablename__ = "residents"
    __table_args__ = (
        CheckConstraint("type_of_residency IN ('RESIDENT','TENANT')", name="ck_residents_type_of_residency"),
        CheckConstraint("sex IN ('MALE','FEMALE','PREFER_NOT_TO_SAY')", name="ck_residents_sex"),
        Index("idx_residents_household", "block_no", "lot_no", "street"),
        Index("idx_residents_last_name", "last_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    type_of_residency: Mapped[str] = mapped_column(String(16), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    suffix: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sex: Mapped[str] = mapped_column(String(32), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    contact_number: Mapped[str] = mapped_column(String(32), nullable=False)
    email_address: Mapped[str | None] = mapped_column(String(320), nullable=True)

    # Household head: monthly dues are tracked per household, against the head.
    is_head: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Household address (block / lot / street)
    block_no: Mapped[str | None] = mapped_column(String(32), nullable=True)
    lot_no: Mapped[str | None] = mapped_column(String(32), nullable=True)
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)

    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
