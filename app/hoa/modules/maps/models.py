from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.hoa.models import Base


class Lot(Base):
    """A property on the community map, keyed by block / lot / street like a household."""

    __tablename__ = "lots"
    __table_args__ = (Index("idx_lots_address", "block_no", "lot_no", "street"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    block_no: Mapped[str] = mapped_column(String(32), nullable=False)
    lot_no: Mapped[str | None] = mapped_column(String(32), nullable=True)
    street: Mapped[str] = mapped_column(String(255), nullable=False)

    lot_size: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    house_type: Mapped[str] = mapped_column(String(128), nullable=False, default="Unknown")
    min_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False, default="Cash")
    attachment_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    availability: Mapped[str] = mapped_column(String(64), nullable=False, default="Available")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    @property
    def location(self) -> str:
        lot = f", Lot {self.lot_no}" if self.lot_no else ""
        return f"Block {self.block_no}{lot}, {self.street}"

    @property
    def is_available(self) -> bool:
        return (self.availability or "").strip().lower() == "available"
