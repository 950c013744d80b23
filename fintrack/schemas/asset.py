from typing import Optional

from pydantic import BaseModel


class ExternalAsset(BaseModel):
    """Provider-agnostic asset search result."""
    ticker: str
    name: str
    company_name: Optional[str] = None
    sector: Optional[str] = None
    sub_sector: Optional[str] = None
    segment: Optional[str] = None
    asset_type: Optional[str] = None
    market: Optional[str] = None
    logo: Optional[str] = None
