from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session
from papertrade.common.models.stock_master import StockMaster, PopularStock
import logging

logger = logging.getLogger(__name__)

# 개발 환경 기본 종목 (NSE 대형주)
DEFAULT_STOCKS = [
    {"symbol": "RELIANCE", "name": "Reliance Industries Limited", "sector": "Energy"},
    {"symbol": "TCS", "name": "Tata Consultancy Services Limited", "sector": "Information Technology"},
    {"symbol": "HDFCBANK", "name": "HDFC Bank Limited", "sector": "Financial Services"},
    {"symbol": "INFY", "name": "Infosys Limited", "sector": "Information Technology"},
    {"symbol": "ICICIBANK", "name": "ICICI Bank Limited", "sector": "Financial Services"},
    {"symbol": "HINDUNILVR", "name": "Hindustan Unilever Limited", "sector": "FMCG"},
    {"symbol": "SBIN", "name": "State Bank of India", "sector": "Financial Services"},
    {"symbol": "BHARTIARTL", "name": "Bharti Airtel Limited", "sector": "Telecommunication"},
    {"symbol": "ITC", "name": "ITC Limited", "sector": "FMCG"},
    {"symbol": "KOTAKBANK", "name": "Kotak Mahindra Bank Limited", "sector": "Financial Services"},
    {"symbol": "LT", "name": "Larsen & Toubro Limited", "sector": "Construction"},
    {"symbol": "WIPRO", "name": "Wipro Limited", "sector": "Information Technology"},
    {"symbol": "AXISBANK", "name": "Axis Bank Limited", "sector": "Financial Services"},
    {"symbol": "MARUTI", "name": "Maruti Suzuki India Limited", "sector": "Automobile"},
    {"symbol": "ADANIPORTS", "name": "Adani Ports and Special Economic Zone Limited", "sector": "Services"},
]

DEFAULT_POPULAR = {
    "nifty50": ["RELIANCE", "TCS", "HDFCBANK", "INFY", "ICICIBANK", "HINDUNILVR", "SBIN", "BHARTIARTL", "ITC", "KOTAKBANK"],
}


class StockMasterService:
    def get_stock_by_symbol(self, db: Session, symbol: str):
        logger.debug(f"get_stock_by_symbol 호출: symbol={symbol}")
        stock = db.query(StockMaster).filter(StockMaster.symbol == symbol.upper()).first()
        if stock:
            logger.debug(f"종목 발견: {stock.name} ({stock.symbol})")
        else:
            logger.debug(f"종목 없음: {symbol}")
        return stock

    def search_stocks(self, db: Session, keyword: str, limit: int = 10):
        """
        로컬 종목 마스터 검색.
        정렬 순서: 종목코드 완전일치 > 종목코드 접두 일치 > 종목명 포함 > 기타
        """
        logger.debug(f"search_stocks 호출: keyword={keyword}, limit={limit}")
        term = keyword.strip().upper()
        if not term:
            return []
        like = f"%{term}%"
        rank = case(
            (StockMaster.symbol == term, 1),
            (StockMaster.symbol.like(f"{term}%"), 2),
            (func.upper(StockMaster.name).like(like), 3),
            else_=4,
        )
        stocks = db.query(StockMaster).filter(
            StockMaster.is_active.is_(True),
            or_(StockMaster.symbol.like(like), func.upper(StockMaster.name).like(like)),
        ).order_by(rank, StockMaster.symbol).limit(limit).all()
        logger.debug(f"검색 결과: {len(stocks)}개 종목 발견.")
        return stocks

    def get_popular_stocks(self, db: Session, category: str = "nifty50", limit: int = 10):
        logger.debug(f"get_popular_stocks 호출: category={category}, limit={limit}")
        rows = db.query(PopularStock, StockMaster).join(
            StockMaster, PopularStock.symbol == StockMaster.symbol
        ).filter(
            PopularStock.category == category
        ).order_by(PopularStock.rank_position.asc()).limit(limit).all()
        return [
            {"symbol": stock.symbol, "name": stock.name, "rank_position": popular.rank_position}
            for popular, stock in rows
        ]

    def seed_default_stocks(self, db: Session):
        """기본 종목과 인기 종목 목록을 DB 에 업데이트/삽입합니다."""
        logger.debug("seed_default_stocks 호출.")
        updated_count = 0
        try:
            for stock_data in DEFAULT_STOCKS:
                existing_stock = db.query(StockMaster).filter(
                    StockMaster.symbol == stock_data["symbol"]
                ).first()
                if existing_stock:
                    existing_stock.name = stock_data["name"]
                    existing_stock.sector = stock_data.get("sector")
                else:
                    db.add(StockMaster(
                        symbol=stock_data["symbol"],
                        name=stock_data["name"],
                        exchange="NSE",
                        sector=stock_data.get("sector"),
                    ))
                updated_count += 1

            for category, symbols in DEFAULT_POPULAR.items():
                for rank, symbol in enumerate(symbols, start=1):
                    popular = db.query(PopularStock).filter(
                        PopularStock.symbol == symbol,
                        PopularStock.category == category,
                    ).first()
                    if popular:
                        popular.rank_position = rank
                    else:
                        db.add(PopularStock(symbol=symbol, category=category, rank_position=rank))
            db.commit()
            logger.info(f"기본 종목 시드 완료. 총 {updated_count}개 종목 처리.")
            return {"success": True, "updated_count": updated_count}
        except Exception as e:
            db.rollback()
            logger.error(f"기본 종목 시드 실패: {e}", exc_info=True)
            return {"success": False, "error": str(e)}
