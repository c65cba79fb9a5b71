from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import papertrade.common.models  # noqa: F401  (테이블 등록)
from papertrade.api.main import app
from papertrade.api.routers import portfolio, stocks, trade, wallet, watchlist
from papertrade.common.database.db_connector import Base, get_db
from papertrade.common.services.cache_maintenance_service import CacheMaintenanceService
from papertrade.common.services.market_data_service import MarketDataService
from papertrade.common.services.portfolio_service import PortfolioService
from papertrade.common.services.search_service import SearchService
from papertrade.common.services.trading_engine import TradingEngine
from papertrade.common.services.watchlist_service import WatchlistService

# 가짜 시세 서버가 알고 있는 종목
MARKET_PRICES = {
    "TCS.NS": (3500.0, 3450.0),
    "INFY.NS": (1500.0, 1490.0),
}


def fake_market(request: httpx.Request) -> httpx.Response:
    """Yahoo 시세/검색 API 를 흉내내는 MockTransport 핸들러"""
    url = urlparse(str(request.url))
    if url.path.startswith("/v1/finance/search"):
        return httpx.Response(200, json={"quotes": []})
    if "/v8/finance/chart/" not in url.path:
        return httpx.Response(404)

    ticker = url.path.rsplit("/", 1)[-1]
    if ticker not in MARKET_PRICES:
        return httpx.Response(404, json={"chart": {"result": None, "error": {"code": "Not Found"}}})
    price, previous_close = MARKET_PRICES[ticker]

    params = parse_qs(url.query)
    if "range" in params:
        timestamps = [1704067200 + i * 86400 for i in range(3)]
        return httpx.Response(200, json={"chart": {"result": [{
            "meta": {"symbol": ticker},
            "timestamp": timestamps,
            "indicators": {"quote": [{
                "open": [price - 10, price - 5, price],
                "high": [price + 20, price + 40, price + 10],
                "low": [price - 30, price - 15, price - 5],
                "close": [price - 5, price, price + 5],
                "volume": [1000, 2000, 3000],
            }]},
        }], "error": None}})

    return httpx.Response(200, json={"chart": {"result": [{"meta": {
        "symbol": ticker,
        "regularMarketPrice": price,
        "previousClose": previous_close,
        "currency": "INR",
        "exchangeName": "NSI",
    }}], "error": None}})


def fake_client():
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_market))


@pytest.fixture(scope="function")
def db_session():
    """TestClient 스레드풀과 같은 인메모리 DB 를 공유하기 위해 StaticPool 사용"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def services():
    market_data = MarketDataService(client_factory=fake_client, sleep=AsyncMock())
    search = SearchService(market_data_service=market_data, client_factory=fake_client)
    return {
        "market_data": market_data,
        "search": search,
        "maintenance": CacheMaintenanceService(search_service=search),
        "engine": TradingEngine(market_data=market_data),
        "portfolio": PortfolioService(market_data=market_data),
        "watchlist": WatchlistService(market_data=market_data),
    }


@pytest.fixture
def client(db_session, services):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[stocks.get_market_data_service] = lambda: services["market_data"]
    app.dependency_overrides[stocks.get_search_service] = lambda: services["search"]
    app.dependency_overrides[stocks.get_cache_maintenance_service] = lambda: services["maintenance"]
    app.dependency_overrides[trade.get_trading_engine] = lambda: services["engine"]
    app.dependency_overrides[wallet.get_trading_engine] = lambda: services["engine"]
    app.dependency_overrides[trade.get_portfolio_service] = lambda: services["portfolio"]
    app.dependency_overrides[wallet.get_portfolio_service] = lambda: services["portfolio"]
    app.dependency_overrides[portfolio.get_portfolio_service] = lambda: services["portfolio"]
    app.dependency_overrides[watchlist.get_watchlist_service] = lambda: services["watchlist"]

    # lifespan(스케줄러, 실제 DB 초기화)은 실행하지 않는다
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """회원가입 + 로그인 후 Bearer 헤더 반환"""
    credentials = {"email": "trader@example.com", "password": "secret123"}
    client.post("/api/v1/auth/register", json={**credentials, "full_name": "Paper Trader"})
    response = client.post("/api/v1/auth/login", json=credentials)
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}
