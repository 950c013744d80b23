from datetime import datetime
from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, Field

from fintrack.models.enums import AssetClass, OperationType


class InvestmentOperationCreate(BaseModel):
    """Schema for recording an investment operation.

    ``quantity`` is in units (up to 4 decimals) and ``price`` in currency
    units. For dividend/interest/split operations ``price`` is the total
    amount received.
    """
    asset: str = Field(..., min_length=1, max_length=100)
    asset_class: AssetClass = AssetClass.OTHER
    type: OperationType
    date: date_type
    quantity: float = Field(..., ge=0)
    price: float = Field(..., ge=0)
    currency: Optional[str] = Field(None, max_length=10)
    broker: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class InvestmentOperationUpdate(BaseModel):
    """Schema for updating an operation. All fields are optional."""
    asset: Optional[str] = Field(None, min_length=1, max_length=100)
    asset_class: Optional[AssetClass] = None
    type: Optional[OperationType] = None
    date: Optional[date_type] = None
    quantity: Optional[float] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, max_length=10)
    broker: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class InvestmentOperationResponse(BaseModel):
    """Stored operation; quantity has 4 implied decimals, money is in cents."""
    id: str
    user_id: str
    asset: str
    asset_class: str
    type: OperationType
    date: date_type
    quantity: int
    price: int
    total_amount: int
    currency: str
    broker: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PositionSummary(BaseModel):
    """Current holding in one (asset, currency) pair.

    Money values are in cents; ``average_price`` is cents per unit.
    """
    asset: str
    asset_class: str
    quantity: float
    average_price: float
    current_value: float
    total_invested: float
    profit: float
    profit_percentage: float
    portfolio_percentage: float
    broker: Optional[str] = None
    currency: str
    average_holding_time: int  # days


class PortfolioMonthlyEvolution(BaseModel):
    month: str  # "YYYY-MM"
    portfolio_value: int
    contributions: int
    withdrawals: int
    dividends: int
    returns: float  # percentage
    cumulative_contributions: int
    cumulative_dividends: int
