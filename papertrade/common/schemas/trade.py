from pydantic import BaseModel
from typing import List, Optional

from papertrade.common.schemas.ledger import HoldingRead, StockTransactionRead, WalletRead, WalletTransactionRead

class TradeRequest(BaseModel):
    symbol: str
    quantity: int
    price: Optional[float] = None

class AmountRequest(BaseModel):
    amount: float

class TradeResult(BaseModel):
    order_ref: str
    symbol: str
    transaction_type: str
    quantity: int
    price: float
    total_amount: float
    balance_after: float
    holding: Optional[HoldingRead] = None

class BalanceResult(BaseModel):
    transaction_type: str
    amount: float
    balance_after: float

class Affordability(BaseModel):
    symbol: str
    quantity: int
    stock_price: float
    required_amount: float
    available_balance: float
    can_afford: bool
    shortfall: float

class PortfolioView(BaseModel):
    total_holdings: int
    total_invested: float
    total_current_value: float
    total_profit_loss: float
    total_profit_loss_percent: float
    holdings: List[HoldingRead]

class NetWorthSummary(BaseModel):
    total_net_worth: float
    liquid_cash: float
    invested_amount: float
    portfolio_value: float
    total_profit_loss: float
    total_profit_loss_percent: float

class FinancialSummary(BaseModel):
    wallet: WalletRead
    portfolio: PortfolioView
    recent_stock_transactions: List[StockTransactionRead]
    recent_wallet_transactions: List[WalletTransactionRead]
    summary: NetWorthSummary
