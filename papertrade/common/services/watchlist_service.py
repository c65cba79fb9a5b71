from sqlalchemy.orm import Session
from papertrade.common.models.watchlist import Watchlist
from papertrade.common.schemas.watchlist import WatchlistItem, WatchlistResponse
from papertrade.common.services.market_data_service import MarketDataService, normalize_symbol
from papertrade.common.services.stock_master_service import StockMasterService
from papertrade.common.utils.exceptions import PaperTradeError
import logging

logger = logging.getLogger(__name__)

class WatchlistService:
    def __init__(self, market_data: MarketDataService = None, stock_master: StockMasterService = None):
        self.market_data = market_data or MarketDataService()
        self.stock_master = stock_master or StockMasterService()

    def add_to_watchlist(self, db: Session, user_id: int, symbol: str):
        symbol = normalize_symbol(symbol)
        logger.debug(f"add_to_watchlist 호출: user_id={user_id}, symbol={symbol}")
        existing = self._get(db, user_id, symbol)
        if existing:
            logger.debug(f"이미 관심종목에 있음: user_id={user_id}, symbol={symbol}")
            return existing, False

        stock = self.stock_master.get_stock_by_symbol(db, symbol)
        item = Watchlist(user_id=user_id, symbol=symbol, company_name=stock.name if stock else symbol)
        db.add(item)
        db.commit()
        db.refresh(item)
        logger.info(f"관심종목 추가: user_id={user_id}, symbol={symbol}")
        return item, True

    def remove_from_watchlist(self, db: Session, user_id: int, symbol: str) -> bool:
        symbol = normalize_symbol(symbol)
        logger.debug(f"remove_from_watchlist 호출: user_id={user_id}, symbol={symbol}")
        item = self._get(db, user_id, symbol)
        if not item:
            return False
        db.delete(item)
        db.commit()
        logger.info(f"관심종목 삭제: user_id={user_id}, symbol={symbol}")
        return True

    def is_in_watchlist(self, db: Session, user_id: int, symbol: str) -> bool:
        return self._get(db, user_id, normalize_symbol(symbol)) is not None

    async def get_watchlist(self, db: Session, user_id: int, include_prices: bool = True) -> WatchlistResponse:
        items = db.query(Watchlist).filter(Watchlist.user_id == user_id).order_by(Watchlist.added_at.asc()).all()
        stocks = []
        for item in items:
            entry = WatchlistItem.model_validate(item)
            if include_prices:
                try:
                    quote = await self.market_data.fetch_quote(db, item.symbol)
                    entry.current_price = quote.current_price
                    entry.previous_close = quote.previous_close
                    entry.change = quote.change
                    entry.change_percent = quote.change_percent
                    entry.price_updated = True
                except PaperTradeError as e:
                    logger.warning(f"관심종목 시세 조회 실패: {item.symbol} - {e}")
            stocks.append(entry)
        return WatchlistResponse(total=len(stocks), stocks=stocks)

    def _get(self, db: Session, user_id: int, symbol: str):
        return db.query(Watchlist).filter(Watchlist.user_id == user_id, Watchlist.symbol == symbol).first()
