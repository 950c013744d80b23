from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CardBase(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=255)
    last_four_digits: Optional[str] = Field(None, pattern=r"^\d{4}$")
    due_day: int = Field(..., ge=1, le=31)
    closing_day: int = Field(..., ge=1, le=31)
    total_limit: Optional[int] = Field(None, ge=0)  # cents


class CardCreate(CardBase):
    is_default: bool = False


class CardUpdate(BaseModel):
    """Schema for updating a card. All fields are optional."""
    nickname: Optional[str] = Field(None, min_length=1, max_length=255)
    last_four_digits: Optional[str] = Field(None, pattern=r"^\d{4}$")
    due_day: Optional[int] = Field(None, ge=1, le=31)
    closing_day: Optional[int] = Field(None, ge=1, le=31)
    total_limit: Optional[int] = Field(None, ge=0)
    is_default: Optional[bool] = None


class CardResponse(CardBase):
    id: str
    user_id: str
    used_limit: int
    available_limit: int
    is_default: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
