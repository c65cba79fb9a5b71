from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

class WatchlistCreate(BaseModel):
    symbol: str

class WatchlistItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    company_name: Optional[str] = None
    added_at: datetime
    current_price: Optional[float] = None
    previous_close: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    price_updated: bool = False

class WatchlistResponse(BaseModel):
    total: int
    stocks: List[WatchlistItem]
