import calendar
import logging
import uuid
from datetime import date
from typing import List, Optional, Dict, Any

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.exceptions import (
    ResourceNotFoundError,
    PermissionDeniedError,
    InsufficientCardLimitError,
)
from fintrack.core.periods import resolve_period, resolve_window
from fintrack.db.repositories.category_repo import CategoryRepository
from fintrack.db.repositories.expense_repo import ExpenseRepository
from fintrack.models.card import Card
from fintrack.models.enums import CategoryType, PeriodToken
from fintrack.models.expense import Expense
from fintrack.schemas.analytics import CategorySlice
from fintrack.schemas.expense import ExpenseCreate, ExpenseUpdate, ExpenseResponse
from fintrack.services.card_service import CardService
from fintrack.services.period_aggregator import category_breakdown, sum_amounts

logger = logging.getLogger(__name__)

# Fields an installment-group update propagates to every sibling
GROUP_FIELDS = ("name", "category", "is_paid")

# Matches the expenses.name column
NAME_MAX_LENGTH = 255


def card_due_date(purchase_date: date, closing_day: int, due_day: int, offset: int = 0) -> date:
    """Due date of the bill a purchase lands on.

    Purchases up to and including the closing day fall in the current month's
    bill; later purchases roll into next month's. ``offset`` shifts by whole
    months for later installments. The due day is clamped to the month's end.
    """
    bill_month = purchase_date.replace(day=1) + relativedelta(months=offset)
    if purchase_date.day > closing_day:
        bill_month += relativedelta(months=1)
    last_day = calendar.monthrange(bill_month.year, bill_month.month)[1]
    return bill_month.replace(day=min(due_day, last_day))


def split_installments(amount: int, installments: int) -> List[int]:
    """Split an amount in cents evenly; the last installment takes the remainder."""
    base = amount // installments
    return [base] * (installments - 1) + [amount - base * (installments - 1)]


def installment_name(name: Optional[str], number: int, installments: int) -> Optional[str]:
    """Suffix a name with "(i/n)", trimming the base so it fits NAME_MAX_LENGTH."""
    if not name:
        return None
    suffix = f" ({number}/{installments})"
    return f"{name[:NAME_MAX_LENGTH - len(suffix)].rstrip()}{suffix}"


class ExpenseService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.expense_repo = ExpenseRepository(db)
        self.category_repo = CategoryRepository(db)
        self.card_service = CardService(db)

    async def _check_limit(self, card: Card, amount: int, released: int = 0) -> None:
        """Raise when the card's available limit can't cover ``amount``.

        ``released`` is the part of the used limit that belongs to the expense
        being replaced. Cards without a total limit are not checked.
        """
        if card.total_limit is None:
            return
        card = await self.card_service.sync_used_limit(card)
        available = card.available_limit + released
        if available < amount:
            raise InsufficientCardLimitError(
                "Insufficient available card limit",
                details={
                    "card_id": card.id,
                    "available_limit": available,
                    "amount": amount,
                },
            )

    async def create(self, user_id: str, data: ExpenseCreate) -> List[ExpenseResponse]:
        """Create an expense, or one expense per installment for card purchases.

        Returns every created row, first installment first.
        """
        installments = data.installments or 1
        card = None
        if data.card_id:
            card = await self.card_service.get_owned(user_id, data.card_id)
            await self._check_limit(card, data.amount)

        base = {
            "user_id": user_id,
            "category": data.category,
            "card_id": data.card_id,
        }

        if card and installments > 1:
            group_id = str(uuid.uuid4())
            rows = [
                {
                    **base,
                    "name": installment_name(data.name, number, installments),
                    "amount": amount,
                    "date": card_due_date(data.date, card.closing_day, card.due_day, number - 1),
                    "purchase_date": data.date,
                    "is_paid": False,
                    "installments": installments,
                    "installment_number": number,
                    "group_id": group_id,
                }
                for number, amount in enumerate(split_installments(data.amount, installments), 1)
            ]
        else:
            rows = [
                {
                    **base,
                    "name": data.name,
                    "amount": data.amount,
                    "date": (
                        card_due_date(data.date, card.closing_day, card.due_day)
                        if card else data.date
                    ),
                    "purchase_date": data.date if card else None,
                    "is_paid": data.is_paid,
                    "installments": installments if installments > 1 else None,
                }
            ]

        expenses = await self.expense_repo.create_many(rows)
        if card:
            await self.card_service.sync_used_limit(card)

        logger.info(
            f"Created {len(expenses)} expense(s) for user {user_id} "
            f"(card={data.card_id}, installments={installments})"
        )
        return [ExpenseResponse.model_validate(e) for e in expenses]

    async def _get_owned(self, user_id: str, expense_id: str) -> Expense:
        expense = await self.expense_repo.get_by_id(expense_id)
        if not expense:
            raise ResourceNotFoundError(f"Expense {expense_id} not found")
        if expense.user_id != user_id:
            raise PermissionDeniedError(
                "You don't have permission to access this expense",
                details={"expense_id": expense_id},
            )
        return expense

    async def get(self, user_id: str, expense_id: str) -> ExpenseResponse:
        return ExpenseResponse.model_validate(await self._get_owned(user_id, expense_id))

    async def list(
        self,
        user_id: str,
        period: Optional[PeriodToken] = None,
        today: Optional[date] = None,
    ) -> List[ExpenseResponse]:
        """List a user's expenses, newest first, optionally within a named period."""
        if period:
            return await self.by_period(user_id, period, today)
        expenses = await self.expense_repo.get_by_user(user_id)
        return [ExpenseResponse.model_validate(e) for e in expenses]

    async def update(
        self,
        user_id: str,
        expense_id: str,
        data: ExpenseUpdate,
        update_group: bool = False,
    ) -> ExpenseResponse:
        """Update an expense, or name/category/paid flag of its whole installment group.

        A single update re-checks the card limit when the card or amount
        changes and recomputes the due date when the card or date changes.
        The used limit of the old and new cards is recalculated afterwards.
        """
        expense = await self._get_owned(user_id, expense_id)

        if update_group and expense.group_id:
            return await self._update_group(user_id, expense, data)

        fields: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        fields.pop("card_id", None)

        old_card_id = expense.card_id
        if "card_id" in data.model_fields_set:
            new_card_id = data.card_id
        else:
            new_card_id = old_card_id
        new_amount = fields.get("amount", expense.amount)

        card_changed = old_card_id != new_card_id
        amount_changed = new_amount != expense.amount

        new_card = None
        if new_card_id:
            new_card = await self.card_service.get_owned(user_id, new_card_id)
            if card_changed or amount_changed:
                released = expense.amount if not card_changed else 0
                await self._check_limit(new_card, new_amount, released)

        if "date" in fields or card_changed:
            purchase_date = fields.get("date") or expense.purchase_date or expense.date
            if new_card:
                fields["date"] = card_due_date(
                    purchase_date, new_card.closing_day, new_card.due_day
                )
                fields["purchase_date"] = purchase_date
            else:
                fields["date"] = purchase_date
                fields["purchase_date"] = None

        fields["card_id"] = new_card_id
        expense = await self.expense_repo.update(expense, fields)

        if card_changed or amount_changed:
            if old_card_id and card_changed:
                old_card = await self.card_service.get_owned(user_id, old_card_id)
                await self.card_service.sync_used_limit(old_card)
            if new_card:
                await self.card_service.sync_used_limit(new_card)

        return ExpenseResponse.model_validate(expense)

    async def _update_group(
        self, user_id: str, expense: Expense, data: ExpenseUpdate
    ) -> ExpenseResponse:
        fields = data.model_dump(include=set(GROUP_FIELDS), exclude_unset=True, exclude_none=True)
        siblings = await self.expense_repo.get_by_group(user_id, expense.group_id)
        for sibling in siblings:
            sibling_fields = dict(fields)
            if "name" in fields and sibling.installments and sibling.installment_number:
                sibling_fields["name"] = installment_name(
                    fields["name"], sibling.installment_number, sibling.installments
                )
            await self.expense_repo.update(sibling, sibling_fields)
        logger.info(f"Updated {len(siblings)} expenses of group {expense.group_id}")
        return ExpenseResponse.model_validate(expense)

    async def remove(self, user_id: str, expense_id: str) -> None:
        expense = await self._get_owned(user_id, expense_id)
        card_id = expense.card_id
        await self.expense_repo.delete_many([expense])
        if card_id:
            await self.card_service.recalculate_used_limit(user_id, card_id)

    async def remove_group(self, user_id: str, group_id: str) -> None:
        expenses = await self.expense_repo.get_by_group(user_id, group_id)
        if not expenses:
            raise ResourceNotFoundError(f"Expense group {group_id} not found")
        card_ids = {e.card_id for e in expenses if e.card_id}
        await self.expense_repo.delete_many(expenses)
        for card_id in card_ids:
            await self.card_service.recalculate_used_limit(user_id, card_id)
        logger.info(f"Removed {len(expenses)} expenses of group {group_id} for user {user_id}")

    async def find_by_group(self, user_id: str, group_id: str) -> List[ExpenseResponse]:
        expenses = await self.expense_repo.get_by_group(user_id, group_id)
        return [ExpenseResponse.model_validate(e) for e in expenses]

    async def by_category(self, user_id: str, category: str) -> List[ExpenseResponse]:
        expenses = await self.expense_repo.get_by_category(user_id, category)
        return [ExpenseResponse.model_validate(e) for e in expenses]

    async def by_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> List[ExpenseResponse]:
        expenses = await self.expense_repo.get_by_date_range(user_id, start_date, end_date)
        return [ExpenseResponse.model_validate(e) for e in expenses]

    async def by_period(
        self, user_id: str, period: PeriodToken, today: Optional[date] = None
    ) -> List[ExpenseResponse]:
        window = resolve_period(period, today)
        return await self.by_date_range(user_id, window.start_date, window.end_date)

    async def _in_window(
        self,
        user_id: str,
        period: Optional[PeriodToken],
        start_date: Optional[date],
        end_date: Optional[date],
        today: Optional[date],
    ) -> List[Expense]:
        window = resolve_window(period, start_date, end_date, today)
        if window is None:
            return await self.expense_repo.get_by_user(user_id)
        return await self.expense_repo.get_by_date_range(
            user_id, window.start_date, window.end_date
        )

    async def get_total(
        self,
        user_id: str,
        period: Optional[PeriodToken] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> int:
        """Total spent in cents, over all time when no window is given."""
        return sum_amounts(await self._in_window(user_id, period, start_date, end_date, today))

    async def get_by_category(
        self,
        user_id: str,
        period: Optional[PeriodToken] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> List[CategorySlice]:
        """Top-10 category breakdown of expenses in a window."""
        expenses = await self._in_window(user_id, period, start_date, end_date, today)
        icons = await self.category_repo.get_icon_map(CategoryType.EXPENSE.value)
        return category_breakdown(expenses, icons)
