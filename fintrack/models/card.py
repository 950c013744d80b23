import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, BigInteger, Integer, Boolean, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fintrack.db.base import Base

if TYPE_CHECKING:
    from fintrack.models.user import User


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    nickname: Mapped[str] = mapped_column(String(255), nullable=False)
    last_four_digits: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)

    # Billing cycle days (1-31)
    due_day: Mapped[int] = mapped_column(Integer, nullable=False)
    closing_day: Mapped[int] = mapped_column(Integer, nullable=False)

    # Limits in cents; used_limit is the sum of linked expenses
    total_limit: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    used_limit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="cards")

    __table_args__ = (
        # At most one default card per user
        Index(
            "uq_cards_user_default",
            "user_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
    )

    @property
    def available_limit(self) -> int:
        if self.total_limit is None:
            return 0
        return self.total_limit - (self.used_limit or 0)
