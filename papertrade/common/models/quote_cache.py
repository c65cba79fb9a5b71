from sqlalchemy import Column, Integer, String, DateTime, Float, BigInteger
from papertrade.common.database.db_connector import Base
from papertrade.common.utils.time_utils import utcnow


class Quote(Base):
    """
    종목별 최신 시세 1건. 새로 조회할 때마다 덮어쓴다.
    fetched_at 이 신선도 판단 기준이다 (tz 없는 UTC).
    """
    __tablename__ = 'quote_cache'

    symbol = Column(String(20), primary_key=True)
    current_price = Column(Float, nullable=True)
    previous_close = Column(Float, nullable=True)
    day_high = Column(Float, nullable=True)
    day_low = Column(Float, nullable=True)
    volume = Column(BigInteger, nullable=True)
    currency = Column(String(10), nullable=True)
    exchange = Column(String(20), nullable=True)
    source = Column(String(50), nullable=True)
    fetched_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Quote(symbol='{self.symbol}', price={self.current_price}, fetched_at={self.fetched_at})>"


class CacheMetadata(Base):
    __tablename__ = 'cache_metadata'

    cache_key = Column(String(100), primary_key=True)
    symbol = Column(String(20), nullable=False, index=True)
    data_type = Column(String(20), nullable=False)  # 'quote' | 'historical'
    period = Column(String(10), nullable=True)
    last_fetched = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    hit_count = Column(Integer, default=0, nullable=False)
