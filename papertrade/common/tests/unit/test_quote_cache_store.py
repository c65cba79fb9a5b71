import pytest
from datetime import datetime

from papertrade.common.models.historical_bar import HistoricalBar
from papertrade.common.models.quote_cache import CacheMetadata, Quote
from papertrade.common.schemas.market_data import PriceBar
from papertrade.common.services.quote_cache_store import QuoteCacheStore, make_cache_key

QUOTE = {
    "current_price": 3500.0,
    "previous_close": 3450.0,
    "day_high": 3520.0,
    "day_low": 3440.0,
    "volume": 1200000,
    "currency": "INR",
    "exchange": "NSI",
    "source": "yahoo_query1",
}


@pytest.fixture
def store(clock):
    return QuoteCacheStore(now_func=clock)


def bar(hour, close, day=15):
    return PriceBar(bar_time=datetime(2024, 1, day, hour, 0), open=close - 5, high=close + 5, low=close - 10, close=close, volume=1000)


def test_make_cache_key():
    assert make_cache_key("TCS", "quote") == "TCS_quote_default"
    assert make_cache_key("TCS", "historical", "1mo") == "TCS_historical_1mo"


@pytest.mark.parametrize("age_seconds", [0, 60, 299, 300])
def test_get_quote_hit_within_window(store, db_session, clock, age_seconds):
    # Given
    store.put_quote(db_session, "TCS", QUOTE)
    clock.advance(seconds=age_seconds)

    # When
    cached = store.get_quote(db_session, "TCS", max_age_minutes=5)

    # Then
    assert cached is not None
    assert cached.current_price == 3500.0


@pytest.mark.parametrize("age_seconds", [301, 600, 3600])
def test_get_quote_miss_after_window(store, db_session, clock, age_seconds):
    store.put_quote(db_session, "TCS", QUOTE)
    clock.advance(seconds=age_seconds)

    assert store.get_quote(db_session, "TCS", max_age_minutes=5) is None


def test_get_quote_absent_symbol(store, db_session):
    assert store.get_quote(db_session, "INFY") is None


def test_put_quote_overwrites_single_row_and_refreshes_metadata(store, db_session, clock):
    # Given
    store.put_quote(db_session, "TCS", QUOTE)
    clock.advance(minutes=10)

    # When
    store.put_quote(db_session, "TCS", {**QUOTE, "current_price": 3600.0})

    # Then
    assert db_session.query(Quote).count() == 1
    row = db_session.query(Quote).one()
    assert row.current_price == 3600.0
    assert row.fetched_at == clock()
    meta = db_session.query(CacheMetadata).filter_by(cache_key="TCS_quote_default").one()
    assert meta.data_type == "quote"
    assert meta.last_fetched == clock()
    assert (meta.expires_at - meta.last_fetched).total_seconds() == 300


def test_get_quote_hit_increments_hit_count(store, db_session):
    store.put_quote(db_session, "TCS", QUOTE)

    store.get_quote(db_session, "TCS")
    store.get_quote(db_session, "TCS")

    meta = db_session.query(CacheMetadata).filter_by(cache_key="TCS_quote_default").one()
    assert meta.hit_count == 2


def test_historical_upsert_is_idempotent(store, db_session):
    # Given: 같은 키의 봉을 두 번 저장
    store.put_historical_bars(db_session, "TCS", "1mo", "1d", [bar(9, 3500.0)])

    # When
    store.put_historical_bars(db_session, "TCS", "1mo", "1d", [bar(9, 3555.0)])

    # Then: 한 행만 남고 두 번째 값이 반영됨
    rows = db_session.query(HistoricalBar).all()
    assert len(rows) == 1
    assert rows[0].close == 3555.0


def test_historical_duplicate_within_batch_keeps_last(store, db_session):
    count = store.put_historical_bars(db_session, "TCS", "1d", "1m", [bar(9, 1.0), bar(9, 2.0), bar(10, 3.0)])

    assert count == 2
    assert db_session.query(HistoricalBar).count() == 2
    first = db_session.query(HistoricalBar).filter_by(bar_time=datetime(2024, 1, 15, 9, 0)).one()
    assert first.close == 2.0


def test_historical_bars_ordered_and_fresh(store, db_session, clock):
    store.put_historical_bars(db_session, "TCS", "5d", "5m", [bar(11, 3.0), bar(9, 1.0), bar(10, 2.0)])
    clock.advance(minutes=59)

    bars = store.get_historical_bars(db_session, "TCS", "5d", max_age_hours=1)

    assert [b.close for b in bars] == [1.0, 2.0, 3.0]
    assert bars[0].date == datetime(2024, 1, 15).date()


def test_historical_bars_filtered_by_interval(store, db_session):
    store.put_historical_bars(db_session, "TCS", "1d", "1m", [bar(9, 1.0), bar(10, 2.0)])
    store.put_historical_bars(db_session, "TCS", "1d", "5m", [bar(9, 5.0)])

    assert [b.close for b in store.get_historical_bars(db_session, "TCS", "1d", interval="5m")] == [5.0]
    assert [b.close for b in store.get_historical_bars(db_session, "TCS", "1d", interval="1m")] == [1.0, 2.0]
    assert store.get_historical_bars(db_session, "TCS", "1d", interval="15m") == []


def test_historical_bars_stale_returns_empty(store, db_session, clock):
    store.put_historical_bars(db_session, "TCS", "5d", "5m", [bar(9, 1.0)])
    clock.advance(hours=1, seconds=1)

    assert store.get_historical_bars(db_session, "TCS", "5d", max_age_hours=1) == []


def test_historical_bars_keep_null_prices(store, db_session):
    store.put_historical_bars(
        db_session, "TCS", "1d", "1m",
        [PriceBar(bar_time=datetime(2024, 1, 15, 9, 15), open=None, high=None, low=None, close=None, volume=None)],
    )

    row = db_session.query(HistoricalBar).one()
    assert row.close is None


def test_sweep_expired_removes_only_metadata(store, db_session, clock):
    # Given
    store.put_quote(db_session, "TCS", QUOTE)                                   # 5분 TTL
    store.put_historical_bars(db_session, "TCS", "1mo", "1d", [bar(9, 1.0)])    # 1시간 TTL
    clock.advance(minutes=30)

    # When
    removed = store.sweep_expired(db_session)

    # Then
    assert removed == 1
    assert db_session.query(CacheMetadata).count() == 1
    assert db_session.query(Quote).count() == 1
    assert db_session.query(HistoricalBar).count() == 1
