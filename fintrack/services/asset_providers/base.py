from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

import httpx

from fintrack.schemas.asset import ExternalAsset

# Known B3 tickers used by providers without a listing endpoint
POPULAR_TICKERS: List[str] = [
    "PETR4", "VALE3", "ITUB4", "BBDC4", "ABEV3", "WEGE3", "MGLU3", "RENT3",
    "SUZB3", "CMIG4", "BBAS3", "ELET3", "ELET6", "USIM5", "GGBR4", "CSAN3",
    "BRAP4", "RADL3", "CCRO3", "CYRE3", "HAPV3", "EGIE3", "BRKM5", "KLBN11",
    "QUAL3", "TIMS3", "VIVT3", "TOTS3", "RAIL3", "SBSP3", "CPLE6", "CPFE3",
    "GOAU4", "CSNA3", "PRIO3", "UGPA3", "DXCO3", "LWSA3", "RDOR3",
    "MRVE3", "CAML3", "ARZZ3", "JHSF3", "CURY3", "DIRR3", "YDUQ3", "ALPA4",
    "BRML3", "JALL3", "MULT3", "GUAR3", "SOMA3", "ENEV3", "AERI3", "AURE3",
]


@runtime_checkable
class AssetProvider(Protocol):
    """Source of asset search results."""

    async def search_assets(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExternalAsset]:
        ...


def filter_tickers(
    tickers: List[str], search: Optional[str], limit: int, offset: int
) -> List[str]:
    """Case-insensitive substring filter over a ticker list, then paginate."""
    if search:
        needle = search.lower()
        tickers = [t for t in tickers if needle in t.lower()]
    return tickers[offset:offset + limit]


class HttpAssetProvider:
    """Base for providers backed by an HTTP API.

    An ``httpx.AsyncClient`` may be injected; otherwise a short-lived client
    is opened per search.
    """

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client
