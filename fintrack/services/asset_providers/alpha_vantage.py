import asyncio
import logging
from typing import List, Optional

import httpx

from fintrack.core.exceptions import AssetProviderError
from fintrack.schemas.asset import ExternalAsset
from fintrack.services.asset_providers.base import (
    HttpAssetProvider,
    POPULAR_TICKERS,
    filter_tickers,
)

logger = logging.getLogger(__name__)

# B3 listings are suffixed with .SA on Alpha Vantage
B3_SUFFIX = ".SA"


class AlphaVantageProvider(HttpAssetProvider):
    """Asset search backed by the Alpha Vantage OVERVIEW endpoint.

    The free plan allows 5 requests per minute, so a search looks up at most
    MAX_LOOKUPS tickers and sleeps ``request_delay`` seconds between calls.
    """

    MAX_LOOKUPS = 5

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://www.alphavantage.co/query",
        request_delay: float = 12.0,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.api_key = api_key
        self.base_url = base_url
        self.request_delay = request_delay

    async def search_assets(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExternalAsset]:
        if not self.api_key:
            raise AssetProviderError(
                "Alpha Vantage API key not configured",
                details={"error_type": "configuration", "missing": ["ALPHA_VANTAGE_API_KEY"]},
            )

        tickers = filter_tickers(POPULAR_TICKERS, search, limit, offset)[: self.MAX_LOOKUPS]

        assets = []
        async with self._http() as client:
            for index, ticker in enumerate(tickers):
                if index and self.request_delay > 0:
                    await asyncio.sleep(self.request_delay)
                try:
                    asset = await self._fetch_overview(client, ticker)
                except httpx.HTTPError as e:
                    logger.warning(f"Alpha Vantage lookup failed for {ticker}: {e}")
                    continue
                if asset:
                    assets.append(asset)
        return assets

    async def _fetch_overview(
        self, client: httpx.AsyncClient, ticker: str
    ) -> Optional[ExternalAsset]:
        response = await client.get(
            self.base_url,
            params={
                "function": "OVERVIEW",
                "symbol": f"{ticker}{B3_SUFFIX}",
                "apikey": self.api_key,
            },
        )
        if response.status_code != 200:
            logger.warning(f"Alpha Vantage returned {response.status_code} for {ticker}")
            return None

        data = response.json()
        # Errors and rate-limit notices come back as 200s
        if not data or "Error Message" in data or "Note" in data:
            logger.warning(f"Alpha Vantage returned no overview for {ticker}")
            return None

        name = data.get("Name") or ticker
        return ExternalAsset(
            ticker=ticker,
            name=name,
            company_name=name,
            sector=data.get("Sector") or None,
            segment=data.get("Industry") or None,
            market="Bovespa",
        )
