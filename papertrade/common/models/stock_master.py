from sqlalchemy import Column, Integer, String, DateTime, Boolean, UniqueConstraint
from papertrade.common.database.db_connector import Base
from sqlalchemy.sql import func

class StockMaster(Base):
    __tablename__ = 'stock_master'
    symbol = Column(String(20), primary_key=True)
    name = Column(String(255), nullable=False)
    exchange = Column(String(50), nullable=True)
    type = Column(String(20), default='EQUITY', nullable=False)
    sector = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)


class PopularStock(Base):
    """카테고리별 인기 종목 (예: nifty50). rank_position 오름차순으로 노출한다."""
    __tablename__ = 'popular_stocks'
    __table_args__ = (UniqueConstraint('symbol', 'category', name='uq_popular_symbol_category'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)
    rank_position = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
