from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.db.repositories.asset_repo import AssetRepository
from fintrack.models.asset import Asset
from fintrack.schemas.asset import ExternalAsset


def asset_to_external(asset: Asset) -> ExternalAsset:
    return ExternalAsset(
        ticker=asset.ticker,
        name=asset.asset_name,
        company_name=asset.legal_name or asset.asset_name,
        sector=asset.sector,
        sub_sector=asset.sub_sector,
        segment=asset.segment,
        asset_type=asset.asset_type,
        market=asset.market_string,
    )


class DatabaseAssetProvider:
    """Search the local assets table."""

    def __init__(self, db: AsyncSession):
        self.asset_repo = AssetRepository(db)

    async def search_assets(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExternalAsset]:
        assets = await self.asset_repo.search(search, group, limit, offset)
        return [asset_to_external(a) for a in assets]
