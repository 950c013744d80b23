from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fintrack.db.base import Base


class Asset(Base):
    """Tradable asset catalogue used by the database asset provider."""

    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticker: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    asset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    legal_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sector: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sub_sector: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    segment: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # ON, PN, UNT, etc.
    asset_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    market_string: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    asset_group: Mapped[str] = mapped_column(String(50), nullable=False, default="STOCK", index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
