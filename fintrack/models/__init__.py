from fintrack.models.user import User
from fintrack.models.income import Income
from fintrack.models.expense import Expense
from fintrack.models.card import Card
from fintrack.models.category import Category
from fintrack.models.investment_operation import InvestmentOperation
from fintrack.models.asset import Asset
from fintrack.models.enums import (
    CategoryType,
    OperationType,
    AssetClass,
    TransactionKind,
    PeriodToken,
    RecurringFrequency,
)

__all__ = [
    "User",
    "Income",
    "Expense",
    "Card",
    "Category",
    "InvestmentOperation",
    "Asset",
    "CategoryType",
    "OperationType",
    "AssetClass",
    "TransactionKind",
    "PeriodToken",
    "RecurringFrequency",
]
