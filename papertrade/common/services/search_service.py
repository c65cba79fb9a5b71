import json
import logging
import re
from datetime import timedelta
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import quote_plus

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from papertrade.common.config import settings
from papertrade.common.models.search_cache import SearchCacheEntry
from papertrade.common.schemas.search import SearchAndQuote, SearchResponse, SearchResult
from papertrade.common.services.market_data_service import MarketDataService
from papertrade.common.services.stock_master_service import StockMasterService
from papertrade.common.utils.exceptions import NotFound
from papertrade.common.utils.http_client import get_market_client
from papertrade.common.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

YAHOO_SEARCH_URL = (
    "https://query1.finance.yahoo.com/v1/finance/search?q={query}&lang=en-US&region=US"
    "&quotesCount={limit}&newsCount=0&enableFuzzyQuery=false"
)
YAHOO_AUTOSUGGEST_URL = "https://autoc.finance.yahoo.com/autoc?query={query}&region=1&lang=en&callback="

# 외부 검색이 모두 비었을 때 사용하는 잘 알려진 종목 매핑
MANUAL_MAPPINGS = {
    "tesla": ("TSLA", "Tesla, Inc.", "NASDAQ"),
    "airtel": ("BHARTIARTL.NS", "Bharti Airtel Limited", "NSI"),
    "reliance": ("RELIANCE.NS", "Reliance Industries Limited", "NSI"),
    "tcs": ("TCS.NS", "Tata Consultancy Services Limited", "NSI"),
    "infy": ("INFY.NS", "Infosys Limited", "NSI"),
    "infosys": ("INFY.NS", "Infosys Limited", "NSI"),
    "apple": ("AAPL", "Apple Inc.", "NASDAQ"),
    "microsoft": ("MSFT", "Microsoft Corporation", "NASDAQ"),
    "google": ("GOOGL", "Alphabet Inc.", "NASDAQ"),
    "amazon": ("AMZN", "Amazon.com, Inc.", "NASDAQ"),
    "meta": ("META", "Meta Platforms, Inc.", "NASDAQ"),
    "facebook": ("META", "Meta Platforms, Inc.", "NASDAQ"),
    "hdfc": ("HDFCBANK.NS", "HDFC Bank Limited", "NSI"),
    "icici": ("ICICIBANK.NS", "ICICI Bank Limited", "NSI"),
    "sbi": ("SBIN.NS", "State Bank of India", "NSI"),
    "wipro": ("WIPRO.NS", "Wipro Limited", "NSI"),
    "adani": ("ADANIPORTS.NS", "Adani Ports and Special Economic Zone Limited", "NSI"),
}


def dedupe_by_symbol(results: Iterable[SearchResult]) -> List[SearchResult]:
    seen = set()
    unique = []
    for result in results:
        if result.symbol in seen:
            continue
        seen.add(result.symbol)
        unique.append(result)
    return unique


def parse_yahoo_search(response: httpx.Response) -> List[SearchResult]:
    quotes = response.json().get("quotes") or []
    return [
        SearchResult(
            symbol=q["symbol"],
            name=q.get("shortname") or q.get("longname") or q["symbol"],
            exchange=q.get("exchange"),
            type=q.get("quoteType") or "EQUITY",
            source="yahoo_search",
        )
        for q in quotes
        if q.get("symbol")
    ]


def parse_autosuggest(response: httpx.Response) -> List[SearchResult]:
    text = response.text.strip()
    # JSONP 콜백 래퍼 제거
    match = re.search(r"\((.*)\)", text, re.DOTALL)
    payload = json.loads(match.group(1) if match else text)
    items = (payload.get("ResultSet") or {}).get("Result") or []
    return [
        SearchResult(
            symbol=item["symbol"],
            name=item.get("name") or item["symbol"],
            exchange=item.get("exchDisp"),
            type=item.get("typeDisp") or "EQUITY",
            source="yahoo_autosuggest",
        )
        for item in items
        if item.get("symbol")
    ]


def manual_lookup(query: str) -> List[SearchResult]:
    lowered = query.lower()
    for key, (symbol, name, exchange) in MANUAL_MAPPINGS.items():
        if key in lowered or lowered in key:
            logger.info(f"수동 매핑 사용: {query} -> {symbol}")
            return [SearchResult(symbol=symbol, name=name, exchange=exchange, type="EQUITY", source="manual")]
    return []


class SearchService:
    def __init__(
        self,
        market_data_service: MarketDataService = None,
        stock_master_service: StockMasterService = None,
        client_factory: Callable[[], httpx.AsyncClient] = get_market_client,
        now_func: Callable = utcnow,
    ):
        self.market_data = market_data_service or MarketDataService(now_func=now_func)
        self.stock_master = stock_master_service or StockMasterService()
        self.client_factory = client_factory
        self.now = now_func

    async def resolve(self, db: Session, query: str, limit: int = 10, allow_online: bool = True) -> SearchResponse:
        normalized = query.strip().lower()
        logger.debug(f"resolve 호출: query={normalized}, limit={limit}, allow_online={allow_online}")

        local = self.stock_master.search_stocks(db, query, limit)
        if local:
            results = [
                SearchResult(symbol=s.symbol, name=s.name, exchange=s.exchange, type=s.type, source="local")
                for s in local
            ]
            return self._response(query, results, limit, source="local")

        entry = self._get_cached(db, normalized)
        if entry is not None:
            results = [SearchResult(**item) for item in json.loads(entry.results)]
            logger.debug(f"검색 캐시 적중: {normalized} ({entry.result_count}건)")
            return self._response(query, results, limit, source=f"cache:{entry.source}", cached=True)

        if not allow_online:
            return self._response(query, [], limit, source="none")

        results, source = await self._search_online(normalized, limit)
        if results:
            self._put_cached(db, normalized, dedupe_by_symbol(results), source)
        return self._response(query, results, limit, source=source)

    async def resolve_and_quote(self, db: Session, query: str, use_cache: bool = True) -> SearchAndQuote:
        response = await self.resolve(db, query, limit=1)
        if not response.results:
            raise NotFound(query)
        found = response.results[0]
        quote = await self.market_data.fetch_quote(db, found.symbol, use_cache=use_cache)
        return SearchAndQuote(search_result=found, quote=quote)

    def sweep_expired(self, db: Session) -> int:
        deleted = db.query(SearchCacheEntry).filter(
            SearchCacheEntry.expires_at < self.now()
        ).delete(synchronize_session=False)
        db.commit()
        logger.info(f"만료된 검색 캐시 {deleted}건 삭제.")
        return deleted

    async def _search_online(self, query: str, limit: int) -> Tuple[List[SearchResult], str]:
        endpoints = [
            ("yahoo_search", YAHOO_SEARCH_URL.format(query=quote_plus(query), limit=limit), parse_yahoo_search),
            ("yahoo_autosuggest", YAHOO_AUTOSUGGEST_URL.format(query=quote_plus(query)), parse_autosuggest),
        ]
        async with self.client_factory() as client:
            for name, url, parser in endpoints:
                try:
                    response = await client.get(url)
                    response.raise_for_status()
                    results = parser(response)
                except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
                    logger.warning(f"온라인 검색 실패 ({name}): {e}")
                    continue
                if results:
                    logger.info(f"온라인 검색 결과 {len(results)}건 ({name}): {query}")
                    return results, name

        manual = manual_lookup(query)
        return manual, "manual" if manual else "none"

    def _response(self, query: str, results: List[SearchResult], limit: int, source: str, cached: bool = False) -> SearchResponse:
        capped = dedupe_by_symbol(results)[:limit]
        return SearchResponse(query=query, results=capped, total=len(capped), source=source, cached=cached)

    def _get_cached(self, db: Session, query: str) -> Optional[SearchCacheEntry]:
        try:
            return db.query(SearchCacheEntry).filter(
                SearchCacheEntry.query == query,
                SearchCacheEntry.expires_at > self.now(),
            ).first()
        except SQLAlchemyError as e:
            logger.warning(f"검색 캐시 조회 실패, 캐시 미스로 처리: {query} - {e}")
            db.rollback()
            return None

    def _put_cached(self, db: Session, query: str, results: List[SearchResult], source: str):
        now = self.now()
        try:
            entry = db.query(SearchCacheEntry).filter(SearchCacheEntry.query == query).first()
            if entry is None:
                entry = SearchCacheEntry(query=query)
                db.add(entry)
            entry.results = json.dumps([r.model_dump() for r in results])
            entry.result_count = len(results)
            entry.source = source
            entry.created_at = now
            entry.expires_at = now + timedelta(minutes=settings.SEARCH_CACHE_MINUTES)
            db.commit()
            logger.debug(f"검색 결과 캐시 저장: {query} ({len(results)}건)")
        except SQLAlchemyError as e:
            logger.error(f"검색 캐시 저장 실패: {query} - {e}")
            db.rollback()
