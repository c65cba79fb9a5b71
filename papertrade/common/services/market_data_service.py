import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import httpx
from lxml import html as lxml_html
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from papertrade.common.config import settings
from papertrade.common.models.quote_cache import Quote
from papertrade.common.schemas.market_data import CompareItem, HistoricalSeries, PriceBar, StockQuote
from papertrade.common.services.quote_cache_store import QuoteCacheStore
from papertrade.common.utils.exceptions import (
    AllEndpointsFailed,
    EndpointParseError,
    EndpointUnreachable,
    PaperTradeError,
    UpstreamError,
)
from papertrade.common.utils.http_client import get_market_client
from papertrade.common.utils.time_utils import from_timestamp, utcnow

logger = logging.getLogger(__name__)

PARSE_ERRORS = (ValueError, KeyError, IndexError, TypeError)

# 이름 있는 조회 구간: (period, interval)
WINDOWS = {
    "intraday": ("1d", "1m"),
    "weekly": ("5d", "5m"),
    "monthly": ("1mo", "1d"),
    "quarterly": ("3mo", "1d"),
    "yearly": ("1y", "1wk"),
}


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def upstream_symbol(symbol: str) -> str:
    """접미사가 없는 종목코드에는 시장 접미사(.NS)를 붙인다."""
    if "." in symbol:
        return symbol
    return f"{symbol}{settings.MARKET_SUFFIX}"


def _to_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(str(value).replace(",", ""))


def _to_int(value) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def parse_chart_quote(response: httpx.Response, ticker: str) -> Dict:
    meta = response.json()["chart"]["result"][0]["meta"]
    price = meta["regularMarketPrice"]
    if price is None:
        raise ValueError("regularMarketPrice is null")
    previous_close = meta.get("previousClose")
    if previous_close is None:
        previous_close = meta.get("chartPreviousClose")
    return {
        "current_price": float(price),
        "previous_close": _to_float(previous_close),
        "day_high": _to_float(meta.get("regularMarketDayHigh")),
        "day_low": _to_float(meta.get("regularMarketDayLow")),
        "volume": _to_int(meta.get("regularMarketVolume")),
        "currency": meta.get("currency"),
        "exchange": meta.get("exchangeName"),
    }


HTML_FIELDS = {
    "regularMarketPrice": "current_price",
    "regularMarketPreviousClose": "previous_close",
    "regularMarketDayHigh": "day_high",
    "regularMarketDayLow": "day_low",
    "regularMarketVolume": "volume",
}


def parse_quote_page(response: httpx.Response, ticker: str) -> Dict:
    """
    API 가 모두 막혔을 때 사용하는 HTML 시세 페이지 파서.
    <fin-streamer data-field=... data-value=...> 요소에서 값을 읽는다.
    """
    if not response.text:
        raise ValueError("empty page")
    tree = lxml_html.fromstring(response.text)
    values: Dict = {}
    for node in tree.xpath("//fin-streamer[@data-field]"):
        node_symbol = node.get("data-symbol")
        if node_symbol and node_symbol.upper() != ticker.upper():
            continue
        key = HTML_FIELDS.get(node.get("data-field"))
        if key is None or key in values:
            continue
        raw = node.get("data-value") or node.text_content().strip()
        values[key] = raw

    if values.get("current_price") in (None, ""):
        raise ValueError("regularMarketPrice not found in page")

    return {
        "current_price": _to_float(values["current_price"]),
        "previous_close": _to_float(values.get("previous_close")),
        "day_high": _to_float(values.get("day_high")),
        "day_low": _to_float(values.get("day_low")),
        "volume": _to_int(values.get("volume")),
    }


def parse_chart_bars(response: httpx.Response, ticker: str) -> List[PriceBar]:
    result = response.json()["chart"]["result"][0]
    timestamps = result.get("timestamp") or []
    quote = result["indicators"]["quote"][0]

    def at(field: str, i: int):
        series = quote.get(field) or []
        return series[i] if i < len(series) else None

    bars = []
    for i, ts in enumerate(timestamps):
        bars.append(PriceBar(
            bar_time=from_timestamp(ts),
            open=at("open", i),
            high=at("high", i),
            low=at("low", i),
            close=at("close", i),
            volume=at("volume", i),
        ))
    return bars


@dataclass
class QuoteEndpoint:
    name: str
    url_template: str
    parser: Callable[[httpx.Response, str], object]

    def url_for(self, ticker: str, **params) -> str:
        return self.url_template.format(symbol=ticker, **params)


# 우선순위 고정: query1 -> query2 -> HTML 페이지
QUOTE_ENDPOINTS = [
    QuoteEndpoint("yahoo_query1", "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}", parse_chart_quote),
    QuoteEndpoint("yahoo_query2", "https://query2.finance.yahoo.com/v8/finance/chart/{symbol}", parse_chart_quote),
    QuoteEndpoint("yahoo_html", "https://finance.yahoo.com/quote/{symbol}", parse_quote_page),
]

HISTORICAL_PRIMARY = QuoteEndpoint(
    "yahoo_query1",
    "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?range={period}&interval={interval}",
    parse_chart_bars,
)
HISTORICAL_SECONDARY = QuoteEndpoint(
    "yahoo_query2",
    "https://query2.finance.yahoo.com/v8/finance/chart/{symbol}?range={period}&interval={interval}",
    parse_chart_bars,
)


class MarketDataService:
    def __init__(
        self,
        cache_store: QuoteCacheStore = None,
        client_factory: Callable[[], httpx.AsyncClient] = get_market_client,
        quote_endpoints: Sequence[QuoteEndpoint] = None,
        historical_endpoints: Sequence[QuoteEndpoint] = None,
        sleep: Callable = asyncio.sleep,
        now_func: Callable = utcnow,
    ):
        self.cache = cache_store or QuoteCacheStore(now_func=now_func)
        self.client_factory = client_factory
        self.quote_endpoints = list(quote_endpoints or QUOTE_ENDPOINTS)
        self.historical_endpoints = list(historical_endpoints or (HISTORICAL_PRIMARY, HISTORICAL_SECONDARY))
        self.sleep = sleep
        self.now = now_func

    async def fetch_quote(self, db: Session, symbol: str, use_cache: bool = True) -> StockQuote:
        symbol = normalize_symbol(symbol)
        logger.debug(f"fetch_quote 호출: symbol={symbol}, use_cache={use_cache}")

        if use_cache:
            cached = self._read_cached_quote(db, symbol)
            if cached is not None:
                return self._quote_from_cache(symbol, cached)

        ticker = upstream_symbol(symbol)
        attempts = []
        async with self.client_factory() as client:
            for endpoint in self.quote_endpoints:
                attempts.append(endpoint.name)
                try:
                    data = await self._call(client, endpoint, endpoint.url_for(ticker), ticker)
                except UpstreamError as e:
                    logger.warning(f"시세 엔드포인트 실패, 다음 엔드포인트 시도: {e}")
                    continue

                quote = self._build_quote(symbol, data, endpoint.name)
                self._write_cached_quote(db, symbol, quote)
                logger.info(f"시세 조회 성공: {symbol} = {quote.current_price} ({endpoint.name})")
                return quote

        logger.error(f"모든 시세 엔드포인트 실패: {symbol} attempts={attempts}")
        raise AllEndpointsFailed(symbol, attempts)

    async def get_enhanced_quote(self, db: Session, symbol: str, use_cache: bool = True) -> StockQuote:
        """등락폭/등락률이 채워진 시세. 모든 StockQuote 가 이미 이 값을 갖고 있다."""
        return await self.fetch_quote(db, symbol, use_cache=use_cache)

    async def fetch_historical(
        self, db: Session, symbol: str, period: str = "1d", interval: str = "1m", use_cache: bool = True
    ) -> HistoricalSeries:
        symbol = normalize_symbol(symbol)
        logger.debug(f"fetch_historical 호출: symbol={symbol}, period={period}, interval={interval}")

        if use_cache:
            rows = self._read_cached_bars(db, symbol, period, interval)
            if rows:
                return HistoricalSeries(
                    symbol=symbol,
                    period=period,
                    interval=interval,
                    source="cache",
                    cached=True,
                    bars=[PriceBar.model_validate(row) for row in rows],
                )

        ticker = upstream_symbol(symbol)
        primary, secondary = self.historical_endpoints[0], self.historical_endpoints[1]
        async with self.client_factory() as client:
            try:
                bars = await self._call(client, primary, primary.url_for(ticker, period=period, interval=interval), ticker)
                source = primary.name
            except UpstreamError as e:
                logger.warning(f"과거 시세 기본 엔드포인트 실패, 보조 엔드포인트 사용: {e}")
                try:
                    bars = await self._call(client, secondary, secondary.url_for(ticker, period=period, interval=interval), ticker)
                    source = secondary.name
                except UpstreamError as e2:
                    logger.error(f"과거 시세 조회 실패: {symbol} - {e2}")
                    raise AllEndpointsFailed(symbol, [primary.name, secondary.name])

        if bars:
            self._write_cached_bars(db, symbol, period, interval, bars)
        logger.info(f"과거 시세 조회 성공: {symbol} {period}/{interval} - {len(bars)}개 ({source})")
        return HistoricalSeries(symbol=symbol, period=period, interval=interval, source=source, cached=False, bars=bars)

    async def get_window(self, db: Session, window: str, symbol: str, use_cache: bool = True) -> HistoricalSeries:
        if window not in WINDOWS:
            raise ValueError(f"Unknown window: {window}")
        period, interval = WINDOWS[window]
        series = await self.fetch_historical(db, symbol, period, interval, use_cache=use_cache)
        if window == "yearly":
            highs = [bar.high for bar in series.bars if bar.high is not None]
            lows = [bar.low for bar in series.bars if bar.low is not None]
            series.fifty_two_week_high = max(highs) if highs else None
            series.fifty_two_week_low = min(lows) if lows else None
        return series

    async def get_intraday(self, db: Session, symbol: str, use_cache: bool = True) -> HistoricalSeries:
        return await self.get_window(db, "intraday", symbol, use_cache)

    async def get_weekly(self, db: Session, symbol: str, use_cache: bool = True) -> HistoricalSeries:
        return await self.get_window(db, "weekly", symbol, use_cache)

    async def get_monthly(self, db: Session, symbol: str, use_cache: bool = True) -> HistoricalSeries:
        return await self.get_window(db, "monthly", symbol, use_cache)

    async def get_quarterly(self, db: Session, symbol: str, use_cache: bool = True) -> HistoricalSeries:
        return await self.get_window(db, "quarterly", symbol, use_cache)

    async def get_yearly(self, db: Session, symbol: str, use_cache: bool = True) -> HistoricalSeries:
        return await self.get_window(db, "yearly", symbol, use_cache)

    async def compare(self, db: Session, symbols: Sequence[str], use_cache: bool = True) -> List[CompareItem]:
        """여러 종목 시세를 순차 조회한다. upstream 호출 제한 때문에 호출 사이에 지연을 둔다."""
        results = []
        for i, symbol in enumerate(symbols):
            if i > 0:
                await self.sleep(settings.COMPARE_DELAY_SECONDS)
            try:
                quote = await self.fetch_quote(db, symbol, use_cache=use_cache)
                results.append(CompareItem(symbol=quote.symbol, success=True, quote=quote))
            except PaperTradeError as e:
                logger.warning(f"비교 조회 중 '{symbol}' 실패: {e}")
                results.append(CompareItem(symbol=normalize_symbol(symbol), success=False, error=e.message))
        return results

    async def _call(self, client: httpx.AsyncClient, endpoint: QuoteEndpoint, url: str, ticker: str):
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise EndpointUnreachable(endpoint.name, f"{type(e).__name__}: {e}")

        try:
            return endpoint.parser(response, ticker)
        except PARSE_ERRORS as e:
            raise EndpointParseError(endpoint.name, f"{type(e).__name__}: {e}")

    def _build_quote(self, symbol: str, data: Dict, source: str) -> StockQuote:
        price = data["current_price"]
        previous_close = data.get("previous_close")
        change = None
        change_percent = None
        if previous_close:
            change = price - previous_close
            change_percent = change / previous_close * 100
        return StockQuote(
            symbol=symbol,
            current_price=price,
            previous_close=previous_close,
            day_high=data.get("day_high"),
            day_low=data.get("day_low"),
            volume=data.get("volume"),
            currency=data.get("currency") or settings.DEFAULT_CURRENCY,
            exchange=data.get("exchange") or settings.DEFAULT_EXCHANGE,
            source=source,
            cached=False,
            last_updated=self.now(),
            change=change,
            change_percent=change_percent,
        )

    def _quote_from_cache(self, symbol: str, row: Quote) -> StockQuote:
        data = {
            "current_price": row.current_price,
            "previous_close": row.previous_close,
            "day_high": row.day_high,
            "day_low": row.day_low,
            "volume": row.volume,
            "currency": row.currency,
            "exchange": row.exchange,
        }
        quote = self._build_quote(symbol, data, "cache")
        quote.cached = True
        quote.last_updated = row.fetched_at
        return quote

    # --- 캐시 접근: 실패는 모두 미스로 취급하고 로그만 남긴다 ---

    def _read_cached_quote(self, db: Session, symbol: str) -> Optional[Quote]:
        try:
            return self.cache.get_quote(db, symbol)
        except SQLAlchemyError as e:
            logger.warning(f"시세 캐시 조회 실패, 캐시 미스로 처리: {symbol} - {e}")
            db.rollback()
            return None

    def _write_cached_quote(self, db: Session, symbol: str, quote: StockQuote):
        try:
            self.cache.put_quote(db, symbol, quote.model_dump())
        except SQLAlchemyError as e:
            logger.error(f"시세 캐시 저장 실패: {symbol} - {e}")
            db.rollback()

    def _read_cached_bars(self, db: Session, symbol: str, period: str, interval: str):
        try:
            return self.cache.get_historical_bars(db, symbol, period, interval=interval)
        except SQLAlchemyError as e:
            logger.warning(f"과거 시세 캐시 조회 실패, 캐시 미스로 처리: {symbol} - {e}")
            db.rollback()
            return []

    def _write_cached_bars(self, db: Session, symbol: str, period: str, interval: str, bars: List[PriceBar]):
        try:
            self.cache.put_historical_bars(db, symbol, period, interval, bars)
        except SQLAlchemyError as e:
            logger.error(f"과거 시세 캐시 저장 실패: {symbol} - {e}")
            db.rollback()
