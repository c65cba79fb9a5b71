from typing import List, Optional

from pydantic import BaseModel

from papertrade.common.schemas.market_data import StockQuote


class SearchResult(BaseModel):
    symbol: str
    name: str
    exchange: Optional[str] = None
    type: Optional[str] = None
    source: str


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total: int
    source: str
    cached: bool = False


class SearchAndQuote(BaseModel):
    search_result: SearchResult
    quote: StockQuote
