from sqlalchemy import Column, Integer, String, DateTime, Float
from papertrade.common.database.db_connector import Base
from papertrade.common.utils.time_utils import utcnow

class StockTransaction(Base):
    __tablename__ = 'stock_transactions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    symbol = Column(String(20), nullable=False, index=True)
    company_name = Column(String(255), nullable=True)
    transaction_type = Column(String(10), nullable=False)  # BUY / SELL
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    order_ref = Column(String(64), nullable=False, unique=True)
    transaction_date = Column(DateTime, default=utcnow, nullable=False, index=True)
