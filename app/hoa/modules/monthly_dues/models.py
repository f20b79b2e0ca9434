from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.hoa.models import Base

if TYPE_CHECKING:
    from app.hoa.modules.residents.models import Resident


class MonthlyDue(Base):
    """Amount paid toward one household's dues for one calendar month."""

    __tablename__ = "monthly_dues"
    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_dues_month"),
        CheckConstraint("status IN ('PENDING','APPROVED','REJECTED')", name="ck_monthly_dues_status"),
        Index("idx_monthly_dues_resident_period", "resident_id", "year", "month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    resident_id: Mapped[int] = mapped_column(ForeignKey("residents.id", ondelete="CASCADE"), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    amount_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)  # CASH | GCASH | MAYA | OTHER_BANK
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    resident: Mapped["Resident"] = relationship("Resident", lazy="selectin")
    transactions: Mapped[list["PaymentTransaction"]] = relationship(
        "PaymentTransaction",
        back_populates="monthly_due",
        cascade="all, delete-orphan",
        order_by="PaymentTransaction.created_at",
    )


class PaymentTransaction(Base):
    """One payment as received at the counter; a MonthlyDue may have several."""

    __tablename__ = "payment_transactions"
    __table_args__ = (Index("idx_payment_transactions_resident", "resident_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    monthly_due_id: Mapped[int] = mapped_column(ForeignKey("monthly_dues.id", ondelete="CASCADE"), nullable=False)
    resident_id: Mapped[int] = mapped_column(ForeignKey("residents.id", ondelete="CASCADE"), nullable=False)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    proof_of_payment: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    monthly_due: Mapped[MonthlyDue] = relationship("MonthlyDue", back_populates="transactions")
    resident: Mapped["Resident"] = relationship("Resident", lazy="selectin")
