import httpx
import pytest
from sqlalchemy import select

from fintrack.models.asset import Asset
from fintrack.services.asset_providers import BrapiProvider
from fintrack.services.asset_search_service import AssetSearchService
from fintrack.services.asset_sync_service import AssetSyncService


def quote_handler(known=None):
    """brapi quote endpoint answering for every ticker, or only ``known`` ones."""
    def handler(request: httpx.Request) -> httpx.Response:
        ticker = request.url.path.rsplit("/", 1)[-1]
        if known is not None and ticker not in known:
            return httpx.Response(200, json={"results": []})
        return httpx.Response(200, json={"results": [{"symbol": ticker, "longName": f"{ticker} S.A."}]})
    return handler


async def stored_assets(session) -> dict:
    result = await session.execute(select(Asset))
    return {asset.ticker: asset for asset in result.scalars().all()}


class TestSyncFromProvider:
    """Tests for paging a provider into the assets table."""

    @pytest.mark.asyncio
    async def test_pages_until_limit_and_refreshes_existing(self, test_session):
        test_session.add(Asset(ticker="PETR4", asset_name="Old name", sector="Petróleo"))
        await test_session.flush()

        async with httpx.AsyncClient(transport=httpx.MockTransport(quote_handler())) as client:
            service = AssetSyncService(test_session, AssetSearchService(BrapiProvider(client=client)))
            created = await service.sync_from_provider(limit=10, max_pages=2)

        assets = await stored_assets(test_session)
        assert created == 19
        assert len(assets) == 20
        assert assets["PETR4"].asset_name == "PETR4 S.A."
        assert assets["PETR4"].sector == "Petróleo"
        assert assets["VALE3"].market_string == "Bovespa"
        assert assets["VALE3"].asset_group == "STOCK"

    @pytest.mark.asyncio
    async def test_short_page_stops_paging(self, test_session):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return quote_handler(known={"PETR4", "VALE3"})(request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = AssetSyncService(test_session, AssetSearchService(BrapiProvider(client=client)))
            created = await service.sync_from_provider(limit=10)

        assert created == 2
        assert len(requests) == 10
        assert set(await stored_assets(test_session)) == {"PETR4", "VALE3"}


class TestSyncBySearch:
    """Tests for syncing the results of one search."""

    @pytest.mark.asyncio
    async def test_only_new_tickers_are_inserted(self, test_session):
        test_session.add(Asset(ticker="PETR4", asset_name="Petrobras PN"))
        await test_session.flush()

        async with httpx.AsyncClient(transport=httpx.MockTransport(quote_handler())) as client:
            service = AssetSyncService(test_session, AssetSearchService(BrapiProvider(client=client)))
            assert await service.sync_by_search("petr") == 0
            assert await service.sync_by_search("vale", group="STOCK") == 1

        assets = await stored_assets(test_session)
        assert assets["PETR4"].asset_name == "Petrobras PN"
        assert assets["VALE3"].legal_name == "VALE3 S.A."
