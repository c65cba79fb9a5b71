from sqlalchemy import Column, Integer, String, DateTime, Float, UniqueConstraint
from papertrade.common.database.db_connector import Base
from papertrade.common.utils.time_utils import utcnow

class Holding(Base):
    __tablename__ = 'portfolio_holdings'
    __table_args__ = (UniqueConstraint('user_id', 'symbol', name='uq_holding_user_symbol'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    symbol = Column(String(20), nullable=False)
    company_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    average_price = Column(Float, nullable=False)
    invested_amount = Column(Float, nullable=False)
    current_price = Column(Float, nullable=True)
    current_value = Column(Float, nullable=True)
    profit_loss = Column(Float, nullable=True)
    profit_loss_percent = Column(Float, nullable=True)
    first_buy_date = Column(DateTime, default=utcnow, nullable=False)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Holding(user_id={self.user_id}, symbol='{self.symbol}', quantity={self.quantity})>"
