from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from papertrade.common.database.db_connector import Base
from papertrade.common.utils.time_utils import utcnow


class Wallet(Base):
    """
    사용자 가상 지갑. 사용자당 1개이며 처음 접근할 때 잔액 0 으로 생성된다.
    balance 는 어떤 경우에도 음수가 될 수 없다.
    """
    __tablename__ = 'user_wallets'

    user_id = Column(Integer, primary_key=True)
    balance = Column(Float, default=0.0, nullable=False)
    total_invested = Column(Float, default=0.0, nullable=False)
    total_current_value = Column(Float, default=0.0, nullable=False)
    total_profit_loss = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Wallet(user_id={self.user_id}, balance={self.balance})>"


class WalletTransaction(Base):
    """지갑 입출금 내역 (append-only)"""
    __tablename__ = 'wallet_transactions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    transaction_type = Column(String(20), nullable=False)  # DEPOSIT, WITHDRAWAL, STOCK_PURCHASE, STOCK_SALE
    amount = Column(Float, nullable=False)
    balance_after = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    reference_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
