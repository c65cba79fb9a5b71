from sqlalchemy import Column, Integer, String, DateTime, func
from papertrade.common.database.db_connector import Base

class Watchlist(Base):
    __tablename__ = 'watch_list'
    user_id = Column(Integer, primary_key=True)
    symbol = Column(String(20), primary_key=True)
    company_name = Column(String(255), nullable=True)
    added_at = Column(DateTime, default=func.now(), nullable=False)
