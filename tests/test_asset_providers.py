import httpx
import pytest

from fintrack.config import Settings
from fintrack.core.exceptions import AssetProviderError
from fintrack.models.asset import Asset
from fintrack.services.asset_providers import (
    AlphaVantageProvider,
    BrapiProvider,
    DatabaseAssetProvider,
    build_asset_provider,
)
from fintrack.services.asset_search_service import AssetSearchService


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestBrapiProvider:
    """Tests for the brapi.dev provider."""

    @pytest.mark.asyncio
    async def test_search_looks_up_matching_tickers(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            ticker = request.url.path.rsplit("/", 1)[-1]
            requested.append(ticker)
            return httpx.Response(200, json={"results": [{
                "symbol": ticker,
                "longName": f"{ticker} S.A.",
                "logo": f"https://icons.brapi.dev/icons/{ticker}.svg",
            }]})

        async with mock_client(handler) as client:
            provider = BrapiProvider(token="secret", client=client)
            assets = await provider.search_assets("petr")

        assert requested == ["PETR4"]
        assert assets[0].ticker == "PETR4"
        assert assets[0].name == "PETR4 S.A."
        assert assets[0].market == "Bovespa"
        assert assets[0].logo.endswith("PETR4.svg")

    @pytest.mark.asyncio
    async def test_lookups_are_capped(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, json={"results": []})

        async with mock_client(handler) as client:
            assets = await BrapiProvider(client=client).search_assets()

        assert assets == []
        assert len(calls) == BrapiProvider.MAX_LOOKUPS

    @pytest.mark.asyncio
    async def test_failed_ticker_is_skipped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("VALE3"):
                raise httpx.ConnectError("boom", request=request)
            if request.url.path.endswith("ABEV3"):
                return httpx.Response(500)
            ticker = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"results": [{"symbol": ticker, "shortName": ticker}]})

        async with mock_client(handler) as client:
            assets = await BrapiProvider(client=client).search_assets("3", limit=3)

        # VALE3, ABEV3 and WEGE3 are the first three matches
        assert [a.ticker for a in assets] == ["WEGE3"]

    @pytest.mark.asyncio
    async def test_authentication_failure_raises(self):
        async with mock_client(lambda request: httpx.Response(401)) as client:
            with pytest.raises(AssetProviderError):
                await BrapiProvider(client=client).search_assets("petr")


class TestAlphaVantageProvider:
    """Tests for the Alpha Vantage provider."""

    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(AssetProviderError) as exc_info:
            await AlphaVantageProvider(api_key="").search_assets("petr")
        assert exc_info.value.details["error_type"] == "configuration"

    @pytest.mark.asyncio
    async def test_overview_lookup(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(dict(request.url.params))
            return httpx.Response(200, json={
                "Name": "Petroleo Brasileiro SA",
                "Sector": "ENERGY",
                "Industry": "OIL & GAS",
            })

        async with mock_client(handler) as client:
            provider = AlphaVantageProvider(api_key="key", request_delay=0, client=client)
            assets = await provider.search_assets("petr")

        assert seen == [{"function": "OVERVIEW", "symbol": "PETR4.SA", "apikey": "key"}]
        assert assets[0].ticker == "PETR4"
        assert assets[0].sector == "ENERGY"
        assert assets[0].segment == "OIL & GAS"

    @pytest.mark.asyncio
    async def test_rate_limit_note_is_skipped_and_lookups_capped(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"Note": "Thank you for using Alpha Vantage!"})

        async with mock_client(handler) as client:
            provider = AlphaVantageProvider(api_key="key", request_delay=0, client=client)
            assets = await provider.search_assets()

        assert assets == []
        assert len(calls) == AlphaVantageProvider.MAX_LOOKUPS


class TestDatabaseProviderAndFactory:
    """Tests for the database provider, the factory and the search service."""

    @pytest.mark.asyncio
    async def test_database_search_filters_by_group(self, test_session):
        test_session.add_all([
            Asset(ticker="HGLG11", asset_name="CSHG Logística", asset_group="FII"),
            Asset(ticker="ITUB4", asset_name="Itaú Unibanco PN", asset_group="STOCK",
                  legal_name="Itaú Unibanco Holding S.A.", sector="Financeiro"),
            Asset(ticker="ITSA4", asset_name="Itaúsa PN", asset_group="STOCK"),
        ])
        await test_session.flush()

        provider = DatabaseAssetProvider(test_session)
        assets = await provider.search_assets("it", group="STOCK")

        assert [a.ticker for a in assets] == ["ITUB4", "ITSA4"]
        assert assets[0].company_name == "Itaú Unibanco Holding S.A."
        assert assets[1].company_name == "Itaúsa PN"

    def test_factory_maps_names(self, test_session):
        settings = Settings(ALPHA_VANTAGE_API_KEY="key", ALPHA_VANTAGE_REQUEST_DELAY=1.5)

        assert isinstance(build_asset_provider("BRAPI", test_session, settings), BrapiProvider)
        alpha = build_asset_provider("alpha_vantage", test_session, settings)
        assert isinstance(alpha, AlphaVantageProvider)
        assert alpha.request_delay == 1.5
        assert isinstance(
            build_asset_provider("DATABASE", test_session, settings), DatabaseAssetProvider
        )
        assert isinstance(
            build_asset_provider("SOMETHING_ELSE", test_session, settings), DatabaseAssetProvider
        )

    @pytest.mark.asyncio
    async def test_search_service_provider_can_be_swapped(self, test_session):
        test_session.add(Asset(ticker="PETR4", asset_name="Petrobras PN"))
        await test_session.flush()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"results": [{"symbol": "PETR4", "longName": "Remote"}]})

        service = AssetSearchService(DatabaseAssetProvider(test_session))
        assert (await service.search_assets("petr"))[0].name == "Petrobras PN"

        async with mock_client(handler) as client:
            service.set_provider(BrapiProvider(client=client))
            assert isinstance(service.provider, BrapiProvider)
            assert (await service.search_assets("petr"))[0].name == "Remote"
