"""
Copy assets found by the active search provider into the local assets table.

Once synced, the database provider can serve searches without calling the
external API.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.db.repositories.asset_repo import AssetRepository
from fintrack.schemas.asset import ExternalAsset
from fintrack.services.asset_search_service import AssetSearchService

logger = logging.getLogger(__name__)

DEFAULT_MARKET = "Bovespa"


def _asset_row(asset: ExternalAsset, ticker: str, group: str) -> dict:
    return {
        "ticker": ticker,
        "asset_name": asset.name or ticker,
        "legal_name": asset.company_name or None,
        "sector": asset.sector or None,
        "sub_sector": asset.sub_sector or None,
        "segment": asset.segment or None,
        "asset_type": asset.asset_type or None,
        "market_string": asset.market or DEFAULT_MARKET,
        "asset_group": group,
    }


def _refreshed_fields(asset: ExternalAsset) -> Dict[str, str]:
    """Fields of an existing asset the provider has non-empty values for."""
    values = {
        "asset_name": asset.name,
        "legal_name": asset.company_name,
        "sector": asset.sector,
        "sub_sector": asset.sub_sector,
        "segment": asset.segment,
        "asset_type": asset.asset_type,
        "market_string": asset.market,
    }
    return {key: value for key, value in values.items() if value}


class AssetSyncService:
    def __init__(self, db: AsyncSession, asset_search: AssetSearchService):
        self.asset_repo = AssetRepository(db)
        self.asset_search = asset_search

    async def sync_from_provider(
        self, group: str = "STOCK", limit: int = 100, max_pages: Optional[int] = None
    ) -> int:
        """Page through the provider and store every asset of ``group``.

        Existing tickers are refreshed with the provider's non-empty values;
        new tickers are inserted. Paging stops at the first short page, or
        after ``max_pages`` pages. Returns the number of new assets.
        """
        logger.info(f"Syncing {group} assets from {type(self.asset_search.provider).__name__}")
        created = 0
        offset = 0
        pages = 0

        while max_pages is None or pages < max_pages:
            assets = await self.asset_search.search_assets(None, group, limit, offset)
            pages += 1
            if not assets:
                break

            created += await self._store(assets, group, refresh_existing=True)
            logger.info(f"Synced {created} new assets so far (offset={offset})")

            if len(assets) < limit:
                break
            offset += limit

        logger.info(f"Asset sync finished: {created} new {group} assets")
        return created

    async def sync_by_search(self, search: str, group: str = "STOCK") -> int:
        """Store assets matching ``search`` that are not in the table yet."""
        assets = await self.asset_search.search_assets(search, group, 100, 0)
        created = await self._store(assets, group, refresh_existing=False)
        logger.info(f"Synced {created} new assets for search {search!r}")
        return created

    async def _store(
        self, assets: List[ExternalAsset], group: str, refresh_existing: bool
    ) -> int:
        by_ticker: Dict[str, ExternalAsset] = {}
        for asset in assets:
            ticker = (asset.ticker or "").strip()
            if ticker and ticker not in by_ticker:
                by_ticker[ticker] = asset

        existing = await self.asset_repo.get_by_tickers(by_ticker)
        if refresh_existing:
            for ticker, stored in existing.items():
                fields = _refreshed_fields(by_ticker[ticker])
                if fields:
                    await self.asset_repo.update(stored, fields)

        rows = [
            _asset_row(asset, ticker, group)
            for ticker, asset in by_ticker.items()
            if ticker not in existing
        ]
        if rows:
            await self.asset_repo.create_many(rows)
        return len(rows)
