import uuid
from datetime import datetime
from datetime import date as date_type
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, BigInteger, ForeignKey, Date, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fintrack.db.base import Base

if TYPE_CHECKING:
    from fintrack.models.user import User

# Fixed-point scales of the stored integers
QUANTITY_SCALE = 10_000
PRICE_SCALE = 100


class InvestmentOperation(Base):
    __tablename__ = "investment_operations"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Asset symbol, e.g. "PETR4", "ITUB4", "Bitcoin"
    asset: Mapped[str] = mapped_column(String(100), nullable=False)
    # AssetClass value
    asset_class: Mapped[str] = mapped_column(String(100), nullable=False, default="other")
    # OperationType value
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    date: Mapped[date_type] = mapped_column(Date, nullable=False)

    # Quantity with 4 implied decimals (fractional units)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Unit price in cents (total received for dividend/interest/split)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Operation total in cents
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="BRL")
    broker: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="investment_operations")

    __table_args__ = (
        Index("ix_investment_operations_user_date", "user_id", "date"),
        Index("ix_investment_operations_user_asset", "user_id", "asset"),
    )
