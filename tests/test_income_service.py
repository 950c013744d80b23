from datetime import date

import pytest

from fintrack.core.exceptions import PermissionDeniedError, ResourceNotFoundError
from fintrack.models.enums import PeriodToken
from fintrack.schemas.expense import ExpenseCreate
from fintrack.schemas.income import IncomeCreate, IncomeUpdate
from fintrack.services.expense_service import ExpenseService
from fintrack.services.income_service import IncomeService


def salary(day: date, amount: int = 500000, recurring: bool = False) -> IncomeCreate:
    return IncomeCreate(
        name="Salário ACME", category="Salário", amount=amount, date=day, is_recurring=recurring
    )


class TestIncomeCreate:
    """Tests for income creation."""

    @pytest.mark.asyncio
    async def test_single_income(self, test_session, test_user):
        service = IncomeService(test_session)
        created = await service.create(test_user.id, salary(date(2024, 3, 5)))

        assert len(created) == 1
        assert created[0].is_recurring is False
        assert created[0].recurring_group_id is None
        assert created[0].user_id == test_user.id

    @pytest.mark.asyncio
    async def test_recurring_income_fans_out_to_twelve_months(self, test_session, test_user):
        """A recurring income creates 12 monthly siblings sharing one group id."""
        service = IncomeService(test_session)
        created = await service.create(test_user.id, salary(date(2024, 1, 31), recurring=True))

        assert len(created) == 12
        assert len({i.recurring_group_id for i in created}) == 1
        assert all(i.is_recurring for i in created)

        dates = sorted(i.date for i in created)
        assert dates[0] == date(2024, 1, 31)
        # Day clamped to each month's end
        assert dates[1] == date(2024, 2, 29)
        assert dates[2] == date(2024, 3, 31)
        assert dates[3] == date(2024, 4, 30)
        assert dates[-1] == date(2024, 12, 31)


class TestIncomeOwnership:
    """Tests for ownership checks."""

    @pytest.mark.asyncio
    async def test_get_missing_income(self, test_session, test_user):
        service = IncomeService(test_session)
        with pytest.raises(ResourceNotFoundError):
            await service.get(test_user.id, "missing-id")

    @pytest.mark.asyncio
    async def test_other_user_cannot_read_update_or_remove(
        self, test_session, test_user, other_user
    ):
        service = IncomeService(test_session)
        income = (await service.create(test_user.id, salary(date(2024, 3, 5))))[0]

        with pytest.raises(PermissionDeniedError):
            await service.get(other_user.id, income.id)
        with pytest.raises(PermissionDeniedError):
            await service.update(other_user.id, income.id, IncomeUpdate(amount=1))
        with pytest.raises(PermissionDeniedError):
            await service.remove(other_user.id, income.id)

        assert (await service.get(test_user.id, income.id)).amount == 500000


class TestIncomeUpdateAndRemove:
    """Tests for income updates and removal."""

    @pytest.mark.asyncio
    async def test_update_touches_only_one_recurring_instance(self, test_session, test_user):
        service = IncomeService(test_session)
        created = await service.create(test_user.id, salary(date(2024, 1, 5), recurring=True))
        target = created[0]

        updated = await service.update(test_user.id, target.id, IncomeUpdate(amount=550000))
        assert updated.amount == 550000

        others = [i for i in await service.list(test_user.id) if i.id != target.id]
        assert all(i.amount == 500000 for i in others)

    @pytest.mark.asyncio
    async def test_remove_recurring_group(self, test_session, test_user):
        service = IncomeService(test_session)
        created = await service.create(test_user.id, salary(date(2024, 1, 5), recurring=True))

        removed = await service.remove_recurring_group(
            test_user.id, created[0].recurring_group_id
        )
        assert removed == 12
        assert await service.list(test_user.id) == []

    @pytest.mark.asyncio
    async def test_remove_unknown_group(self, test_session, test_user):
        service = IncomeService(test_session)
        with pytest.raises(ResourceNotFoundError):
            await service.remove_recurring_group(test_user.id, "no-such-group")

    @pytest.mark.asyncio
    async def test_remove_single(self, test_session, test_user):
        service = IncomeService(test_session)
        income = (await service.create(test_user.id, salary(date(2024, 3, 5))))[0]
        await service.remove(test_user.id, income.id)
        with pytest.raises(ResourceNotFoundError):
            await service.get(test_user.id, income.id)


class TestIncomeQueries:
    """Tests for income filters and stats."""

    @pytest.mark.asyncio
    async def test_by_period_and_category(self, test_session, test_user):
        service = IncomeService(test_session)
        await service.create(test_user.id, salary(date(2024, 3, 5)))
        await service.create(test_user.id, salary(date(2024, 2, 5)))
        await service.create(
            test_user.id,
            IncomeCreate(name="Projeto", category="Freelance", amount=80000, date=date(2024, 3, 20)),
        )

        this_month = await service.list(
            test_user.id, PeriodToken.THIS_MONTH, today=date(2024, 3, 15)
        )
        assert len(this_month) == 2
        # Newest first
        assert this_month[0].date == date(2024, 3, 20)

        freelance = await service.by_category(test_user.id, "Freelance")
        assert [i.name for i in freelance] == ["Projeto"]

        february = await service.by_date_range(test_user.id, date(2024, 2, 1), date(2024, 2, 29))
        assert len(february) == 1

    @pytest.mark.asyncio
    async def test_stats_against_previous_month(self, test_session, test_user):
        incomes = IncomeService(test_session)
        expenses = ExpenseService(test_session)

        await incomes.create(test_user.id, salary(date(2024, 3, 5), amount=500000))
        await incomes.create(test_user.id, salary(date(2024, 2, 5), amount=400000))
        await expenses.create(
            test_user.id,
            ExpenseCreate(category="Alimentação", amount=200000, date=date(2024, 3, 10)),
        )
        await expenses.create(
            test_user.id,
            ExpenseCreate(category="Alimentação", amount=100000, date=date(2024, 2, 10)),
        )

        stats = await incomes.get_stats(
            test_user.id, PeriodToken.THIS_MONTH, today=date(2024, 3, 15)
        )

        assert stats.income == 500000
        assert stats.income_change == 25.0
        assert stats.expense == 200000
        assert stats.expense_change == 100.0
        assert stats.balance == 300000
        assert stats.balance_change == 0.0

    @pytest.mark.asyncio
    async def test_stats_with_no_history(self, test_session, test_user):
        service = IncomeService(test_session)
        await service.create(test_user.id, salary(date(2024, 3, 5), amount=100000))

        stats = await service.get_stats(
            test_user.id, start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)
        )
        assert stats.income == 100000
        assert stats.income_change == 100
        assert stats.expense_change == 0
