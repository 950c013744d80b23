import uuid
from datetime import datetime
from datetime import date as date_type
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, BigInteger, Integer, Boolean, ForeignKey, Date, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fintrack.db.base import Base

if TYPE_CHECKING:
    from fintrack.models.user import User


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)

    # Amount in cents
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Card due date for card expenses, purchase date otherwise
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    purchase_date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Card and installment metadata
    card_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("cards.id", ondelete="SET NULL"), nullable=True, index=True
    )
    installments: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    installment_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    group_id: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="expenses")

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category", "user_id", "category"),
    )
