import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.config import get_settings
from fintrack.core.exceptions import ResourceNotFoundError, PermissionDeniedError
from fintrack.core.periods import parse_month_key
from fintrack.db.repositories.investment_operation_repo import InvestmentOperationRepository
from fintrack.models.enums import OperationType
from fintrack.models.investment_operation import (
    InvestmentOperation,
    QUANTITY_SCALE,
    PRICE_SCALE,
)
from fintrack.schemas.asset import ExternalAsset
from fintrack.schemas.investment import (
    InvestmentOperationCreate,
    InvestmentOperationUpdate,
    InvestmentOperationResponse,
    PositionSummary,
    PortfolioMonthlyEvolution,
)
from fintrack.services.asset_providers.database import DatabaseAssetProvider
from fintrack.services.asset_search_service import AssetSearchService
from fintrack.services.position_reducer import reduce_positions, portfolio_monthly_evolution

logger = logging.getLogger(__name__)


def to_fixed(value: float, scale: int) -> int:
    """Convert a decimal amount to a scaled integer, rounding half up."""
    return int((Decimal(str(value)) * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def operation_total(op_type: OperationType, quantity: float, price: float) -> int:
    """Total in cents: quantity x price for trades, price itself for income events."""
    if op_type in (OperationType.BUY, OperationType.SELL):
        return to_fixed(Decimal(str(quantity)) * Decimal(str(price)), PRICE_SCALE)
    return to_fixed(price, PRICE_SCALE)


class InvestmentService:
    def __init__(self, db: AsyncSession, asset_search: Optional[AssetSearchService] = None):
        self.db = db
        self.operation_repo = InvestmentOperationRepository(db)
        self.asset_search = asset_search or AssetSearchService(DatabaseAssetProvider(db))

    async def create(
        self, user_id: str, data: InvestmentOperationCreate
    ) -> InvestmentOperationResponse:
        operation = await self.operation_repo.create(
            user_id,
            asset=data.asset,
            asset_class=data.asset_class.value,
            type=data.type.value,
            date=data.date,
            quantity=to_fixed(data.quantity, QUANTITY_SCALE),
            price=to_fixed(data.price, PRICE_SCALE),
            total_amount=operation_total(data.type, data.quantity, data.price),
            currency=data.currency or get_settings().DEFAULT_CURRENCY,
            broker=data.broker or None,
            notes=data.notes or None,
        )
        logger.info(
            f"Recorded {data.type.value} of {data.asset} for user {user_id} "
            f"(total={operation.total_amount})"
        )
        return InvestmentOperationResponse.model_validate(operation)

    async def list(self, user_id: str) -> List[InvestmentOperationResponse]:
        """A user's operation ledger, newest first."""
        operations = await self.operation_repo.get_by_user(user_id)
        return [InvestmentOperationResponse.model_validate(o) for o in operations]

    async def _get_owned(self, user_id: str, operation_id: str) -> InvestmentOperation:
        operation = await self.operation_repo.get_by_id(operation_id)
        if not operation:
            raise ResourceNotFoundError(f"Investment operation {operation_id} not found")
        if operation.user_id != user_id:
            raise PermissionDeniedError(
                "You don't have permission to access this operation",
                details={"operation_id": operation_id},
            )
        return operation

    async def get(self, user_id: str, operation_id: str) -> InvestmentOperationResponse:
        return InvestmentOperationResponse.model_validate(
            await self._get_owned(user_id, operation_id)
        )

    async def update(
        self, user_id: str, operation_id: str, data: InvestmentOperationUpdate
    ) -> InvestmentOperationResponse:
        """Update an operation, recomputing its total when type, quantity or price change."""
        operation = await self._get_owned(user_id, operation_id)
        changes = data.model_dump(exclude_unset=True)

        fields = {}
        for key in ("asset", "date", "currency"):
            if changes.get(key):
                fields[key] = changes[key]
        for key in ("broker", "notes"):
            if key in changes:
                fields[key] = changes[key]
        if data.asset_class:
            fields["asset_class"] = data.asset_class.value
        if data.type:
            fields["type"] = data.type.value
        if data.quantity is not None:
            fields["quantity"] = to_fixed(data.quantity, QUANTITY_SCALE)
        if data.price is not None:
            fields["price"] = to_fixed(data.price, PRICE_SCALE)

        if data.type or data.quantity is not None or data.price is not None:
            op_type = data.type or OperationType(operation.type)
            quantity = (
                data.quantity if data.quantity is not None
                else operation.quantity / QUANTITY_SCALE
            )
            price = data.price if data.price is not None else operation.price / PRICE_SCALE
            fields["total_amount"] = operation_total(op_type, quantity, price)

        operation = await self.operation_repo.update(operation, fields)
        return InvestmentOperationResponse.model_validate(operation)

    async def remove(self, user_id: str, operation_id: str) -> None:
        operation = await self._get_owned(user_id, operation_id)
        await self.operation_repo.delete(operation)
        logger.info(f"Removed investment operation {operation_id} for user {user_id}")

    async def get_current_position(self, user_id: str) -> List[PositionSummary]:
        """Open positions, largest invested capital first."""
        operations = await self.operation_repo.get_by_user(user_id)
        positions = reduce_positions(operations)
        positions.sort(key=lambda p: p.total_invested, reverse=True)
        return positions

    async def get_monthly_evolution(self, user_id: str) -> List[PortfolioMonthlyEvolution]:
        operations = await self.operation_repo.get_by_user(user_id)
        return portfolio_monthly_evolution(operations)

    async def get_operations_by_asset(
        self, user_id: str, asset: str
    ) -> List[InvestmentOperationResponse]:
        operations = await self.operation_repo.get_by_asset(user_id, asset)
        return [InvestmentOperationResponse.model_validate(o) for o in operations]

    async def get_operations_by_month(
        self, user_id: str, month: str
    ) -> List[InvestmentOperationResponse]:
        """Operations in a "YYYY-MM" month, oldest first."""
        window = parse_month_key(month)
        operations = await self.operation_repo.get_by_date_range(
            user_id, window.start_date, window.end_date
        )
        return [InvestmentOperationResponse.model_validate(o) for o in operations]

    async def search_assets(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExternalAsset]:
        return await self.asset_search.search_assets(search, group, limit, offset)

    async def get_asset_by_ticker(self, ticker: str) -> Optional[ExternalAsset]:
        """Look a ticker up through the asset search, matching it exactly."""
        wanted = ticker.strip().upper()
        assets = await self.asset_search.search_assets(wanted, None, 10, 0)
        return next((a for a in assets if a.ticker.upper() == wanted), None)
