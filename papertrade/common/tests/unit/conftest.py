import json
from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import papertrade.common.models  # noqa: F401  (테이블 등록)
from papertrade.common.database.db_connector import Base


class FakeClock:
    """테스트에서 시간을 직접 움직이기 위한 now_func 대체품"""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 15, 9, 30, 0)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingTransport:
    """
    httpx.MockTransport 핸들러.
    URL 부분 문자열 -> 응답 규칙 목록을 받아 첫 번째로 일치하는 응답을 돌려주고 호출 순서를 기록한다.
    """

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, request: httpx.Request):
        url = str(request.url)
        self.calls.append(url)
        for fragment, responder in self.routes:
            if fragment in url:
                return responder(request) if callable(responder) else responder
        return httpx.Response(404, json={"error": "not routed"})

    def client_factory(self):
        return lambda: httpx.AsyncClient(transport=httpx.MockTransport(self))


def chart_payload(price=3500.0, previous_close=3450.0, symbol="TCS.NS", **meta):
    body = {
        "regularMarketPrice": price,
        "previousClose": previous_close,
        "regularMarketDayHigh": 3520.0,
        "regularMarketDayLow": 3440.0,
        "regularMarketVolume": 1200000,
        "currency": "INR",
        "exchangeName": "NSI",
        "symbol": symbol,
    }
    body.update(meta)
    return {"chart": {"result": [{"meta": body}], "error": None}}


def bars_payload(timestamps, opens, highs, lows, closes, volumes):
    return {
        "chart": {
            "result": [{
                "meta": {"symbol": "TCS.NS"},
                "timestamp": timestamps,
                "indicators": {"quote": [{
                    "open": opens,
                    "high": highs,
                    "low": lows,
                    "close": closes,
                    "volume": volumes,
                }]},
            }],
            "error": None,
        }
    }


@pytest.fixture(scope='function')
def db_session():
    engine = create_engine('sqlite:///:memory:')
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_transport():
    def _make(routes):
        return RecordingTransport(routes)
    return _make


@pytest.fixture
def chart_json():
    return chart_payload


@pytest.fixture
def bars_json():
    return bars_payload


@pytest.fixture
def jsonp():
    def _wrap(data):
        return f"callback({json.dumps(data)})"
    return _wrap
