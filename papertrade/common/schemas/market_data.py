from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class StockQuote(BaseModel):
    """호출자에게 돌려주는 시세 레코드. 캐시 적중 여부와 출처를 함께 담는다."""
    symbol: str
    current_price: float
    previous_close: Optional[float] = None
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    volume: Optional[int] = None
    currency: str = "INR"
    exchange: str = "NSI"
    source: str
    cached: bool = False
    last_updated: datetime
    change: Optional[float] = None
    change_percent: Optional[float] = None


class PriceBar(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bar_time: datetime
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    volume: Optional[int] = None


class HistoricalSeries(BaseModel):
    symbol: str
    period: str
    interval: str
    source: str
    cached: bool = False
    bars: List[PriceBar]
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None


class CompareItem(BaseModel):
    symbol: str
    success: bool
    quote: Optional[StockQuote] = None
    error: Optional[str] = None
