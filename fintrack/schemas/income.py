from datetime import datetime
from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, Field


class IncomeBase(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    amount: int = Field(..., gt=0)  # cents
    date: date_type


class IncomeCreate(IncomeBase):
    """Schema for creating an income; recurring incomes fan out to 12 months."""
    is_recurring: bool = False


class IncomeUpdate(BaseModel):
    """Schema for updating a single income instance. All fields are optional."""
    name: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[int] = Field(None, gt=0)
    date: Optional[date_type] = None


class IncomeResponse(IncomeBase):
    id: str
    user_id: str
    is_recurring: bool
    recurring_group_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
