import logging
from typing import List, Optional

from fintrack.schemas.asset import ExternalAsset
from fintrack.services.asset_providers.base import AssetProvider

logger = logging.getLogger(__name__)


class AssetSearchService:
    """Asset search over an injected provider.

    The provider is fixed at construction and only replaced through
    ``set_provider``.
    """

    def __init__(self, provider: AssetProvider):
        self._provider = provider

    @property
    def provider(self) -> AssetProvider:
        return self._provider

    def set_provider(self, provider: AssetProvider) -> None:
        logger.info(
            f"Switching asset provider from {type(self._provider).__name__} "
            f"to {type(provider).__name__}"
        )
        self._provider = provider

    async def search_assets(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExternalAsset]:
        return await self._provider.search_assets(search, group, limit, offset)
