from typing import Any, Dict, Iterable, Optional, List

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.asset import Asset


class AssetRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Asset]:
        """Case-insensitive ticker/name search, ordered by asset name."""
        query = select(Asset)
        if group:
            query = query.where(Asset.asset_group == group)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Asset.ticker).like(pattern),
                    func.lower(Asset.asset_name).like(pattern),
                )
            )
        result = await self.db.execute(
            query.order_by(Asset.asset_name.asc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_tickers(self, tickers: Iterable[str]) -> Dict[str, Asset]:
        """Map ticker -> asset for the given tickers that already exist."""
        tickers = list(tickers)
        if not tickers:
            return {}
        result = await self.db.execute(select(Asset).where(Asset.ticker.in_(tickers)))
        return {asset.ticker: asset for asset in result.scalars().all()}

    async def create_many(self, rows: List[dict]) -> List[Asset]:
        assets = [Asset(**row) for row in rows]
        self.db.add_all(assets)
        await self.db.flush()
        return assets

    async def update(self, asset: Asset, fields: Dict[str, Any]) -> Asset:
        for key, value in fields.items():
            setattr(asset, key, value)
        await self.db.flush()
        return asset
