from datetime import datetime
from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ExpenseBase(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    amount: int = Field(..., gt=0)  # cents
    date: date_type


class ExpenseCreate(ExpenseBase):
    """Schema for creating an expense.

    ``date`` is the purchase date. When ``card_id`` is set the stored date
    becomes the card's due date for the matching billing cycle, and
    ``installments`` > 1 splits the amount across monthly installments.
    """
    is_paid: bool = False
    card_id: Optional[str] = None
    installments: Optional[int] = Field(None, ge=1, le=48)

    @model_validator(mode="after")
    def check_installment_amount(self) -> "ExpenseCreate":
        # Every installment must be worth at least one cent
        if self.card_id and self.installments and self.amount < self.installments:
            raise ValueError("amount must be at least one cent per installment")
        return self


class ExpenseUpdate(BaseModel):
    """Schema for updating an expense. All fields are optional.

    Sending ``card_id: null`` explicitly detaches the card; omitting it keeps
    the current card.
    """
    name: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[int] = Field(None, gt=0)
    date: Optional[date_type] = None
    is_paid: Optional[bool] = None
    card_id: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: str
    user_id: str
    name: Optional[str] = None
    category: str
    amount: int
    date: date_type
    purchase_date: Optional[date_type] = None
    is_paid: bool
    card_id: Optional[str] = None
    installments: Optional[int] = None
    installment_number: Optional[int] = None
    group_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
