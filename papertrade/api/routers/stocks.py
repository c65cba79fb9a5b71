from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from papertrade.common.database.db_connector import get_db
from papertrade.common.schemas.result import OperationResult
from papertrade.common.services.cache_maintenance_service import CacheMaintenanceService
from papertrade.common.services.market_data_service import MarketDataService
from papertrade.common.services.search_service import SearchService
from papertrade.common.services.stock_master_service import StockMasterService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stocks", tags=["stocks"])

def get_market_data_service():
    return MarketDataService()

def get_search_service():
    return SearchService()

def get_stock_master_service():
    return StockMasterService()

def get_cache_maintenance_service():
    return CacheMaintenanceService()

# 경로 변수 라우트(/{symbol}/...)보다 고정 경로를 먼저 등록한다

@router.get("/search")
async def search_stocks(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    online: bool = True,
    db: Session = Depends(get_db),
    search_service: SearchService = Depends(get_search_service),
):
    result = await search_service.resolve(db, q, limit=limit, allow_online=online)
    return OperationResult.ok(result)

@router.get("/search-quote")
async def search_and_quote(
    q: str = Query(..., min_length=1),
    use_cache: bool = True,
    db: Session = Depends(get_db),
    search_service: SearchService = Depends(get_search_service),
):
    result = await search_service.resolve_and_quote(db, q, use_cache=use_cache)
    return OperationResult.ok(result)

@router.get("/compare")
async def compare_stocks(
    symbols: str = Query(..., description="쉼표로 구분된 종목코드 (예: TCS,INFY)"),
    use_cache: bool = True,
    db: Session = Depends(get_db),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    symbol_list = [s.strip() for s in symbols.split(",") if s.strip()]
    result = await market_data.compare(db, symbol_list, use_cache=use_cache)
    return OperationResult.ok(result)

@router.get("/popular")
def popular_stocks(
    category: str = "nifty50",
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    stock_master: StockMasterService = Depends(get_stock_master_service),
):
    return OperationResult.ok(stock_master.get_popular_stocks(db, category=category, limit=limit))

@router.post("/cache/clean")
def clean_cache(db: Session = Depends(get_db), maintenance: CacheMaintenanceService = Depends(get_cache_maintenance_service)):
    result = maintenance.clean_expired_cache(db)
    return OperationResult.ok(result, message="Expired cache entries removed")

@router.get("/{symbol}/quote")
async def get_quote(
    symbol: str,
    use_cache: bool = True,
    db: Session = Depends(get_db),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    quote = await market_data.fetch_quote(db, symbol, use_cache=use_cache)
    return OperationResult.ok(quote)

@router.get("/{symbol}/details")
async def get_details(
    symbol: str,
    use_cache: bool = True,
    db: Session = Depends(get_db),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    quote = await market_data.get_enhanced_quote(db, symbol, use_cache=use_cache)
    return OperationResult.ok(quote)

@router.get("/{symbol}/historical")
async def get_historical(
    symbol: str,
    period: str = "1d",
    interval: str = "1m",
    use_cache: bool = True,
    db: Session = Depends(get_db),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    series = await market_data.fetch_historical(db, symbol, period, interval, use_cache=use_cache)
    return OperationResult.ok(series)

@router.get("/{symbol}/chart/{window}")
async def get_chart(
    symbol: str,
    window: Literal["intraday", "weekly", "monthly", "quarterly", "yearly"],
    use_cache: bool = True,
    db: Session = Depends(get_db),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    series = await market_data.get_window(db, window, symbol, use_cache=use_cache)
    return OperationResult.ok(series)
