from fintrack.services.asset_providers.base import AssetProvider
from fintrack.services.asset_providers.database import DatabaseAssetProvider
from fintrack.services.asset_providers.brapi import BrapiProvider
from fintrack.services.asset_providers.alpha_vantage import AlphaVantageProvider
from fintrack.services.asset_providers.factory import build_asset_provider

__all__ = [
    "AssetProvider",
    "DatabaseAssetProvider",
    "BrapiProvider",
    "AlphaVantageProvider",
    "build_asset_provider",
]
