from datetime import date

import pytest

from fintrack.core.exceptions import PermissionDeniedError, ResourceNotFoundError
from fintrack.models.asset import Asset
from fintrack.models.enums import AssetClass, OperationType
from fintrack.schemas.investment import InvestmentOperationCreate, InvestmentOperationUpdate
from fintrack.services.investment_service import InvestmentService, operation_total, to_fixed


def operation(kind: OperationType, quantity: float, price: float, day: date, asset="PETR4", **kwargs):
    return InvestmentOperationCreate(
        asset=asset,
        asset_class=AssetClass.STOCK,
        type=kind,
        date=day,
        quantity=quantity,
        price=price,
        **kwargs,
    )


class TestFixedPoint:
    """Tests for stored integer conversion."""

    def test_to_fixed_rounds_half_up(self):
        assert to_fixed(10.005, 100) == 1001
        assert to_fixed(0.12345, 10_000) == 1235

    def test_trade_total_is_quantity_times_price(self):
        assert operation_total(OperationType.BUY, 3, 33.33) == 9999

    def test_income_total_is_price(self):
        assert operation_total(OperationType.DIVIDEND, 0, 12.5) == 1250


class TestInvestmentCrud:
    """Tests for investment operation CRUD."""

    @pytest.mark.asyncio
    async def test_create_stores_scaled_integers(self, test_session, test_user):
        service = InvestmentService(test_session)
        created = await service.create(
            test_user.id, operation(OperationType.BUY, 10.5, 12.34, date(2024, 1, 10), broker="XP")
        )

        assert created.quantity == 105000
        assert created.price == 1234
        assert created.total_amount == 12957
        assert created.currency == "BRL"
        assert created.broker == "XP"

    @pytest.mark.asyncio
    async def test_update_recomputes_total(self, test_session, test_user):
        service = InvestmentService(test_session)
        created = await service.create(
            test_user.id, operation(OperationType.BUY, 10, 10, date(2024, 1, 10))
        )

        updated = await service.update(
            test_user.id, created.id, InvestmentOperationUpdate(price=12.5)
        )
        assert updated.price == 1250
        assert updated.total_amount == 12500

        updated = await service.update(
            test_user.id, created.id, InvestmentOperationUpdate(type=OperationType.DIVIDEND)
        )
        assert updated.total_amount == 1250

    @pytest.mark.asyncio
    async def test_ownership(self, test_session, test_user, other_user):
        service = InvestmentService(test_session)
        created = await service.create(
            test_user.id, operation(OperationType.BUY, 1, 10, date(2024, 1, 10))
        )

        with pytest.raises(PermissionDeniedError):
            await service.get(other_user.id, created.id)
        with pytest.raises(PermissionDeniedError):
            await service.remove(other_user.id, created.id)

        await service.remove(test_user.id, created.id)
        with pytest.raises(ResourceNotFoundError):
            await service.get(test_user.id, created.id)


class TestPortfolio:
    """Tests for positions and portfolio queries."""

    @pytest.mark.asyncio
    async def test_current_position(self, test_session, test_user):
        service = InvestmentService(test_session)
        await service.create(test_user.id, operation(OperationType.BUY, 10, 10, date(2024, 1, 10)))
        await service.create(test_user.id, operation(OperationType.SELL, 4, 15, date(2024, 2, 10)))
        await service.create(
            test_user.id, operation(OperationType.BUY, 1, 300, date(2024, 1, 15), asset="BTC")
        )
        await service.create(
            test_user.id, operation(OperationType.BUY, 5, 20, date(2024, 1, 15), asset="VALE3")
        )
        await service.create(
            test_user.id, operation(OperationType.SELL, 5, 25, date(2024, 3, 1), asset="VALE3")
        )

        positions = await service.get_current_position(test_user.id)

        assert [p.asset for p in positions] == ["BTC", "PETR4"]
        petr4 = positions[1]
        assert petr4.quantity == pytest.approx(6)
        assert petr4.total_invested == pytest.approx(6000)
        assert petr4.portfolio_percentage == pytest.approx(6000 / 36000 * 100)

    @pytest.mark.asyncio
    async def test_operations_by_month_and_asset(self, test_session, test_user):
        service = InvestmentService(test_session)
        await service.create(test_user.id, operation(OperationType.BUY, 1, 10, date(2024, 1, 31)))
        await service.create(test_user.id, operation(OperationType.BUY, 1, 10, date(2024, 2, 1)))
        await service.create(
            test_user.id, operation(OperationType.BUY, 1, 10, date(2024, 2, 20), asset="ITUB4")
        )

        february = await service.get_operations_by_month(test_user.id, "2024-02")
        assert [o.date for o in february] == [date(2024, 2, 1), date(2024, 2, 20)]

        petr4 = await service.get_operations_by_asset(test_user.id, "PETR4")
        assert [o.date for o in petr4] == [date(2024, 1, 31), date(2024, 2, 1)]

    @pytest.mark.asyncio
    async def test_monthly_evolution(self, test_session, test_user):
        service = InvestmentService(test_session)
        await service.create(test_user.id, operation(OperationType.BUY, 10, 10, date(2024, 1, 10)))
        await service.create(
            test_user.id, operation(OperationType.DIVIDEND, 0, 5, date(2024, 2, 10))
        )

        evolution = await service.get_monthly_evolution(test_user.id)
        assert [(e.month, e.portfolio_value) for e in evolution] == [
            ("2024-01", 10000),
            ("2024-02", 10500),
        ]

    @pytest.mark.asyncio
    async def test_search_assets_defaults_to_database(self, test_session):
        test_session.add_all([
            Asset(ticker="PETR4", asset_name="Petrobras PN", asset_group="STOCK"),
            Asset(ticker="VALE3", asset_name="Vale ON", asset_group="STOCK"),
        ])
        await test_session.flush()

        results = await InvestmentService(test_session).search_assets("petr")
        assert [a.ticker for a in results] == ["PETR4"]

    @pytest.mark.asyncio
    async def test_get_asset_by_ticker_matches_exactly(self, test_session):
        test_session.add_all([
            Asset(ticker="PETR3", asset_name="Petrobras ON", asset_group="STOCK"),
            Asset(ticker="PETR4", asset_name="Petrobras PN", asset_group="STOCK"),
        ])
        await test_session.flush()

        service = InvestmentService(test_session)
        asset = await service.get_asset_by_ticker("petr4")

        assert asset.ticker == "PETR4"
        assert asset.name == "Petrobras PN"
        assert await service.get_asset_by_ticker("PETR") is None
