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


class BrapiProvider(HttpAssetProvider):
    """Asset search backed by brapi.dev quotes.

    brapi.dev has no ticker listing endpoint, so searches run over a fixed
    list of popular B3 tickers and each match is looked up individually.
    """

    # Quote lookups per search, to stay inside the public rate limit
    MAX_LOOKUPS = 10

    def __init__(
        self,
        base_url: str = "https://brapi.dev/api",
        token: str = "",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.base_url = base_url.rstrip("/")
        self.token = token

    async def search_assets(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExternalAsset]:
        tickers = filter_tickers(POPULAR_TICKERS, search, limit, offset)[: self.MAX_LOOKUPS]

        assets = []
        async with self._http() as client:
            for ticker in tickers:
                try:
                    asset = await self._fetch_quote(client, ticker)
                except httpx.HTTPError as e:
                    logger.warning(f"brapi lookup failed for {ticker}: {e}")
                    continue
                if asset:
                    assets.append(asset)
        return assets

    async def _fetch_quote(
        self, client: httpx.AsyncClient, ticker: str
    ) -> Optional[ExternalAsset]:
        params = {"token": self.token} if self.token else None
        response = await client.get(f"{self.base_url}/quote/{ticker}", params=params)

        if response.status_code == 401:
            raise AssetProviderError(
                "brapi.dev authentication failed",
                details={"error_type": "authentication", "ticker": ticker},
            )
        if response.status_code != 200:
            logger.warning(f"brapi returned {response.status_code} for {ticker}")
            return None

        results = response.json().get("results") or []
        if not results:
            return None

        result = results[0]
        name = result.get("longName") or result.get("shortName") or ticker
        return ExternalAsset(
            ticker=result.get("symbol") or ticker,
            name=name,
            company_name=name,
            market="Bovespa",
            logo=result.get("logo"),
        )
