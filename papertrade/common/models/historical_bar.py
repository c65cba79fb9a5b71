from sqlalchemy import Column, Integer, String, DateTime, Float, BigInteger, Date, UniqueConstraint
from papertrade.common.database.db_connector import Base
from papertrade.common.utils.time_utils import utcnow

class HistoricalBar(Base):
    __tablename__ = 'historical_bars'
    __table_args__ = (
        UniqueConstraint('symbol', 'bar_time', 'period', 'interval', name='uq_bar_symbol_time_period_interval'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), index=True, nullable=False)
    bar_time = Column(DateTime, nullable=False)
    date = Column(Date, index=True, nullable=False)
    period = Column(String(10), nullable=False)
    interval = Column(String(10), nullable=False)
    # 상장 전/휴장 구간은 upstream 이 null 을 내려주므로 모두 nullable
    open = Column(Float, nullable=True)
    high = Column(Float, nullable=True)
    low = Column(Float, nullable=True)
    close = Column(Float, nullable=True)
    volume = Column(BigInteger, nullable=True)
    fetched_at = Column(DateTime, default=utcnow, nullable=False)
