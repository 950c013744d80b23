import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.config import Settings, get_settings
from fintrack.services.asset_providers.alpha_vantage import AlphaVantageProvider
from fintrack.services.asset_providers.base import AssetProvider
from fintrack.services.asset_providers.brapi import BrapiProvider
from fintrack.services.asset_providers.database import DatabaseAssetProvider

logger = logging.getLogger(__name__)


def build_asset_provider(
    name: Optional[str],
    db: AsyncSession,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> AssetProvider:
    """Map a provider name (DATABASE, BRAPI, ALPHA_VANTAGE) to a provider.

    Unknown or empty names fall back to the database provider.
    """
    settings = settings or get_settings()
    key = (name or "DATABASE").upper()

    if key == "BRAPI":
        return BrapiProvider(
            base_url=settings.BRAPI_BASE_URL,
            token=settings.BRAPI_TOKEN,
            timeout=settings.HTTP_TIMEOUT,
            client=client,
        )

    if key == "ALPHA_VANTAGE":
        return AlphaVantageProvider(
            api_key=settings.ALPHA_VANTAGE_API_KEY,
            base_url=settings.ALPHA_VANTAGE_BASE_URL,
            request_delay=settings.ALPHA_VANTAGE_REQUEST_DELAY,
            timeout=settings.HTTP_TIMEOUT,
            client=client,
        )

    if key != "DATABASE":
        logger.warning(f"Unknown asset provider {name!r}, using the database provider")
    return DatabaseAssetProvider(db)
