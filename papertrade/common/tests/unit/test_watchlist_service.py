import httpx
import pytest

from papertrade.common.models.stock_master import StockMaster
from papertrade.common.services.market_data_service import MarketDataService
from papertrade.common.services.watchlist_service import WatchlistService

USER_ID = 5


@pytest.fixture
def watchlist_service(clock, make_transport, chart_json):
    transport = make_transport([("TCS.NS", httpx.Response(200, json=chart_json(price=3500.0, previous_close=3400.0)))])
    return WatchlistService(market_data=MarketDataService(client_factory=transport.client_factory(), now_func=clock))


def test_add_and_remove(db_session, watchlist_service):
    # Given
    db_session.add(StockMaster(symbol="TCS", name="Tata Consultancy Services Limited", exchange="NSE"))
    db_session.commit()

    # When
    item, added = watchlist_service.add_to_watchlist(db_session, USER_ID, "tcs")
    _, added_again = watchlist_service.add_to_watchlist(db_session, USER_ID, "TCS")

    # Then
    assert added is True
    assert added_again is False
    assert item.company_name == "Tata Consultancy Services Limited"
    assert watchlist_service.is_in_watchlist(db_session, USER_ID, "TCS")
    assert not watchlist_service.is_in_watchlist(db_session, USER_ID + 1, "TCS")

    assert watchlist_service.remove_from_watchlist(db_session, USER_ID, "TCS") is True
    assert watchlist_service.remove_from_watchlist(db_session, USER_ID, "TCS") is False
    assert not watchlist_service.is_in_watchlist(db_session, USER_ID, "TCS")


@pytest.mark.asyncio
async def test_get_watchlist_with_prices(db_session, watchlist_service):
    # Given: TCS 는 시세 조회 가능, UNKNOWN 은 실패
    watchlist_service.add_to_watchlist(db_session, USER_ID, "TCS")
    watchlist_service.add_to_watchlist(db_session, USER_ID, "UNKNOWN")

    # When
    response = await watchlist_service.get_watchlist(db_session, USER_ID)

    # Then
    assert response.total == 2
    by_symbol = {s.symbol: s for s in response.stocks}
    assert by_symbol["TCS"].price_updated is True
    assert by_symbol["TCS"].current_price == 3500.0
    assert by_symbol["TCS"].change == pytest.approx(100.0)
    assert by_symbol["UNKNOWN"].price_updated is False
    assert by_symbol["UNKNOWN"].current_price is None
    assert by_symbol["UNKNOWN"].company_name == "UNKNOWN"


@pytest.mark.asyncio
async def test_get_watchlist_without_prices(db_session, watchlist_service):
    watchlist_service.add_to_watchlist(db_session, USER_ID, "TCS")

    response = await watchlist_service.get_watchlist(db_session, USER_ID, include_prices=False)

    assert response.stocks[0].price_updated is False
